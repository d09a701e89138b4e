import pytest

from app.services.channels import GroupBroadcastChannel
from app.services.group_service import GroupCoordinator


@pytest.fixture
def channel(hub):
    return GroupBroadcastChannel(hub)


@pytest.fixture
def coordinator(db_session, channel):
    return GroupCoordinator(db_session, channel)


@pytest.fixture
def listeners(hub, channel, users, recording_connection):
    """One registered connection per user."""
    connections = {}
    for user in users:
        conn = recording_connection(user_id=user.id)
        hub.connect(conn)
        channel.register_for_updates(conn, user.id)
        connections[user.id] = conn
    return connections


def member_ids(payload: dict) -> list[int]:
    return [m['usuario']['id'] for m in payload['usuariogrupo']]


async def test_create_broadcasts_full_aggregate_to_everyone_registered(coordinator, users, listeners):
    ana, luis, marta = users

    group = await coordinator.create('Padel Thursdays', 'Court 3 at 19:00', [ana.id, luis.id])

    assert group is not None
    assert group.name == 'Padel Thursdays'
    for conn in listeners.values():
        [payload] = conn.payloads('newGroup')
        assert payload['id'] == group.id
        assert payload['nombre'] == 'Padel Thursdays'
        assert payload['descripcion'] == 'Court 3 at 19:00'
        assert payload['imagen'] is None
        assert sorted(member_ids(payload)) == [ana.id, luis.id]


async def test_create_ignores_duplicate_member_ids(coordinator, users, listeners):
    ana, luis, _ = users

    group = await coordinator.create('Padel Thursdays', '', [ana.id, luis.id, ana.id])

    assert len(group.members) == 2


async def test_remove_member_broadcasts_shrunk_aggregate(coordinator, users, listeners):
    ana, luis, _ = users
    group = await coordinator.create('Padel Thursdays', '', [ana.id, luis.id])

    removed = await coordinator.remove_member(luis.id, group.id)

    assert removed == 1
    [payload] = listeners[luis.id].payloads('updatedGroup')
    assert member_ids(payload) == [ana.id]


async def test_remove_missing_membership_still_broadcasts(coordinator, users, listeners):
    ana, luis, marta = users
    group = await coordinator.create('Padel Thursdays', '', [ana.id, luis.id])

    removed = await coordinator.remove_member(marta.id, group.id)

    assert removed == 0
    [payload] = listeners[ana.id].payloads('updatedGroup')
    assert sorted(member_ids(payload)) == [ana.id, luis.id]


async def test_add_member_broadcasts_grown_aggregate(coordinator, users, listeners):
    ana, luis, marta = users
    group = await coordinator.create('Padel Thursdays', '', [ana.id, luis.id])

    member = await coordinator.add_member(marta.id, group.id)

    assert member.id is not None
    [payload] = listeners[marta.id].payloads('updatedGroup')
    assert sorted(member_ids(payload)) == [ana.id, luis.id, marta.id]


async def test_field_updates_broadcast_new_values(coordinator, users, listeners):
    ana, luis, _ = users
    group = await coordinator.create('Padel Thursdays', '', [ana.id, luis.id])

    assert await coordinator.rename(group.id, 'Padel Fridays') == 1
    assert await coordinator.redescribe(group.id, 'Moved to Friday') == 1
    assert await coordinator.rephoto(group.id, 'https://example.com/court.jpg') == 1

    updates = listeners[ana.id].payloads('updatedGroup')
    assert [u['nombre'] for u in updates] == ['Padel Fridays'] * 3
    assert updates[1]['descripcion'] == 'Moved to Friday'
    assert updates[2]['imagen'] == 'https://example.com/court.jpg'
    assert len(updates[2]['usuariogrupo']) == 2


async def test_update_of_missing_group_affects_nothing(coordinator, listeners):
    assert await coordinator.rename(999, 'Ghost') == 0
    assert listeners[1].frames == []


async def test_reload_failure_skips_broadcast(coordinator, users, listeners, monkeypatch):
    ana, luis, _ = users

    async def vanished(group_id):
        return None

    monkeypatch.setattr(coordinator.store, 'load_aggregate', vanished)

    result = await coordinator.create('Padel Thursdays', '', [ana.id, luis.id])

    assert result is None
    assert all(conn.frames == [] for conn in listeners.values())
    assert [g.name for g in await coordinator.list_for_user(ana.id)] == ['Padel Thursdays']


async def test_broadcast_failure_is_swallowed(db_session, users):
    class FailingChannel:
        def emit_new_group(self, group):
            raise RuntimeError('hub down')

    coordinator = GroupCoordinator(db_session, FailingChannel())

    group = await coordinator.create('Padel Thursdays', '', [users[0].id])

    assert group is not None
    assert [g.id for g in await coordinator.list_for_user(users[0].id)] == [group.id]


async def test_list_for_user_returns_only_member_groups(coordinator, users):
    ana, luis, marta = users
    padel = await coordinator.create('Padel Thursdays', '', [ana.id, luis.id])
    running = await coordinator.create('Running club', '', [luis.id, marta.id])

    assert [g.id for g in await coordinator.list_for_user(luis.id)] == [padel.id, running.id]
    assert [g.id for g in await coordinator.list_for_user(marta.id)] == [running.id]
    # Full member list, not just the requesting user's membership
    assert len((await coordinator.list_for_user(marta.id))[0].members) == 2
