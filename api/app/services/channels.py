"""Addressing layers over RealtimeHub for chat rooms and group-level events."""
import logging

from app.schemas.chat import GroupOut, MessageOut
from app.schemas.realtime import RealtimeEvent, DeletedGroupPayload
from app.services.realtime_hub import Connection, RealtimeHub

logger = logging.getLogger(__name__)


def room_for_group(group_id: int) -> str:
    return f'grupo_{group_id}'


class ChatBroadcastChannel:
    """One room per group; new messages fan out to the group's room only."""

    def __init__(self, hub: RealtimeHub):
        self.hub = hub

    def join_room(self, connection: Connection, user_id: int, group_id: int):
        self.hub.join(connection, room_for_group(group_id))
        logger.info(f'User {user_id} joined chat of group {group_id}')

    def leave_room(self, connection: Connection, user_id: int, group_id: int):
        self.hub.leave(connection, room_for_group(group_id))
        logger.info(f'User {user_id} left chat of group {group_id}')

    def emit_new_message(self, group_id: int, message: MessageOut) -> int:
        return self.hub.broadcast_to_room(
            room_for_group(group_id),
            RealtimeEvent.NEW_MESSAGE.value,
            message.model_dump(mode='json', by_alias=True),
        )


class GroupBroadcastChannel:
    """Group created/updated/deleted events go to every registered user.

    Members and non-members alike receive them; clients filter by membership.
    """

    def __init__(self, hub: RealtimeHub):
        self.hub = hub

    def register_for_updates(self, connection: Connection, user_id: int):
        self.hub.register(connection, user_id)

    def unregister_from_updates(self, connection: Connection):
        self.hub.unregister(connection)

    def emit_new_group(self, group: GroupOut) -> int:
        return self._emit(RealtimeEvent.NEW_GROUP, group.model_dump(mode='json', by_alias=True))

    def emit_updated_group(self, group: GroupOut) -> int:
        return self._emit(RealtimeEvent.UPDATED_GROUP, group.model_dump(mode='json', by_alias=True))

    def emit_deleted_group(self, group_id: int) -> int:
        return self._emit(RealtimeEvent.DELETED_GROUP, DeletedGroupPayload(id=group_id).model_dump())

    def _emit(self, event: RealtimeEvent, payload: dict) -> int:
        return self.hub.broadcast_to_all(event.value, payload)
