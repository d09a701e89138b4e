import pytest

from app.services.realtime_hub import Connection, RealtimeHub


def test_join_is_idempotent(hub, recording_connection):
    conn = recording_connection(user_id=1)
    hub.connect(conn)

    hub.join(conn, 'grupo_1')
    hub.join(conn, 'grupo_1')

    assert hub.broadcast_to_room('grupo_1', 'newMessage', {'id': 1}) == 1
    assert conn.frames == [('newMessage', {'id': 1})]


def test_leave_without_join_is_noop(hub, recording_connection):
    conn = recording_connection(user_id=1)
    hub.connect(conn)

    hub.leave(conn, 'grupo_7')

    assert 'grupo_7' not in hub.rooms
    assert conn.id not in hub.connection_rooms


def test_rooms_are_isolated(hub, recording_connection):
    padel = recording_connection(user_id=1)
    running = recording_connection(user_id=2)
    both = recording_connection(user_id=3)
    for conn in (padel, running, both):
        hub.connect(conn)
    hub.join(padel, 'grupo_1')
    hub.join(running, 'grupo_2')
    hub.join(both, 'grupo_1')
    hub.join(both, 'grupo_2')

    delivered = hub.broadcast_to_room('grupo_1', 'newMessage', {'id': 10})

    assert delivered == 2
    assert padel.payloads('newMessage') == [{'id': 10}]
    assert both.payloads('newMessage') == [{'id': 10}]
    assert running.frames == []


def test_left_connection_stops_receiving(hub, recording_connection):
    conn = recording_connection(user_id=1)
    hub.connect(conn)
    hub.join(conn, 'grupo_1')
    hub.leave(conn, 'grupo_1')

    assert hub.broadcast_to_room('grupo_1', 'newMessage', {'id': 1}) == 0
    assert conn.frames == []
    assert not hub.is_joined(conn, 'grupo_1')


def test_broadcast_to_all_reaches_only_registered(hub, recording_connection):
    registered = recording_connection(user_id=1)
    anonymous = recording_connection(user_id=2)
    hub.connect(registered)
    hub.connect(anonymous)
    hub.register(registered, 1)

    assert hub.broadcast_to_all('deletedGroup', {'id': 4}) == 1
    assert registered.frames == [('deletedGroup', {'id': 4})]
    assert anonymous.frames == []


def test_register_overwrites_previous_user(hub, recording_connection):
    conn = recording_connection()
    hub.connect(conn)
    hub.register(conn, 1)
    hub.register(conn, 2)

    assert hub.registered_user(conn) == 2


def test_unregister_stops_group_events(hub, recording_connection):
    conn = recording_connection(user_id=1)
    hub.connect(conn)
    hub.register(conn, 1)
    hub.unregister(conn)

    assert hub.broadcast_to_all('newGroup', {'id': 1}) == 0
    assert hub.registered_user(conn) is None


def test_disconnect_releases_rooms_and_registration(hub, recording_connection):
    conn = recording_connection(user_id=1)
    hub.connect(conn)
    hub.join(conn, 'grupo_1')
    hub.join(conn, 'grupo_2')
    hub.register(conn, 1)

    hub.on_disconnect(conn)

    assert hub.rooms == {}
    assert hub.registrations == {}
    assert conn.id not in hub.connections
    assert hub.broadcast_to_room('grupo_1', 'newMessage', {}) == 0
    assert hub.broadcast_to_all('newGroup', {}) == 0


def test_failing_connection_does_not_stop_fanout(hub, recording_connection, broken_connection):
    broken = broken_connection(user_id=1)
    healthy = recording_connection(user_id=2)
    for conn in (broken, healthy):
        hub.connect(conn)
        hub.join(conn, 'grupo_1')

    delivered = hub.broadcast_to_room('grupo_1', 'newMessage', {'id': 3})

    assert delivered == 1
    assert healthy.payloads('newMessage') == [{'id': 3}]
    # Cleanup is left to the receive loop
    assert hub.is_joined(broken, 'grupo_1')


def test_frames_keep_emit_order(recording_connection):
    hub = RealtimeHub()
    conn = recording_connection(user_id=1)
    hub.connect(conn)
    hub.join(conn, 'grupo_1')

    for message_id in range(1, 6):
        hub.broadcast_to_room('grupo_1', 'newMessage', {'id': message_id})

    assert [data['id'] for data in conn.payloads('newMessage')] == [1, 2, 3, 4, 5]


def test_connection_requires_send_implementation():
    with pytest.raises(TypeError):
        Connection(user_id=1)
