import json

import pytest

from app.services.channels import room_for_group
from app.services.realtime_gateway import RealtimeGateway


@pytest.fixture
def gateway(hub):
    return RealtimeGateway(hub)


def frame(event, data=None) -> str:
    return json.dumps({'event': event, 'data': data})


def test_room_name_format():
    assert room_for_group(42) == 'grupo_42'


def test_join_and_leave_room_frames(gateway, hub, recording_connection):
    conn = recording_connection(user_id=1)
    hub.connect(conn)

    assert gateway.handle_frame(conn, frame('joinRoom', {'userId': 1, 'groupId': 5}))
    assert hub.is_joined(conn, 'grupo_5')

    assert gateway.handle_frame(conn, frame('leaveRoom', {'userId': 1, 'groupId': 5}))
    assert not hub.is_joined(conn, 'grupo_5')


def test_register_and_unregister_frames(gateway, hub, recording_connection):
    conn = recording_connection(user_id=3)
    hub.connect(conn)

    assert gateway.handle_frame(conn, frame('registerForGroupUpdates', {'userId': 3}))
    assert hub.registered_user(conn) == 3

    assert gateway.handle_frame(conn, frame('unregisterFromGroupUpdates'))
    assert hub.registered_user(conn) is None


@pytest.mark.parametrize('raw', [
    'not json',
    json.dumps({'data': {'userId': 1}}),
    json.dumps(['joinRoom', {'userId': 1, 'groupId': 1}]),
])
def test_malformed_frames_are_dropped(gateway, hub, recording_connection, raw):
    conn = recording_connection(user_id=1)
    hub.connect(conn)

    assert gateway.handle_frame(conn, raw) is False
    assert hub.rooms == {}


def test_unknown_event_is_dropped(gateway, hub, recording_connection):
    conn = recording_connection(user_id=1)
    hub.connect(conn)

    assert gateway.handle_frame(conn, frame('deleteEverything', {'groupId': 1})) is False


def test_invalid_payload_is_dropped(gateway, hub, recording_connection):
    conn = recording_connection(user_id=1)
    hub.connect(conn)

    assert gateway.handle_frame(conn, frame('joinRoom', {'userId': 1})) is False
    assert gateway.handle_frame(conn, frame('registerForGroupUpdates', None)) is False
    assert hub.rooms == {}
    assert hub.registrations == {}


def test_server_events_sent_by_clients_are_ignored(gateway, hub, recording_connection):
    conn = recording_connection(user_id=1)
    other = recording_connection(user_id=2)
    hub.connect(conn)
    hub.connect(other)
    hub.register(other, 2)

    assert gateway.handle_frame(conn, frame('deletedGroup', {'id': 1})) is False
    assert other.frames == []
