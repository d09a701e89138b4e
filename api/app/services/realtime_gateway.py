"""Dispatches client -> server realtime frames to the broadcast channels."""
import logging
from typing import Any

from pydantic import ValidationError

from app.schemas.realtime import Frame, RealtimeEvent, RoomPayload, RegisterPayload
from app.services.channels import ChatBroadcastChannel, GroupBroadcastChannel
from app.services.realtime_hub import Connection, RealtimeHub

logger = logging.getLogger(__name__)


class RealtimeGateway:
    def __init__(self, hub: RealtimeHub):
        self.chat_channel = ChatBroadcastChannel(hub)
        self.group_channel = GroupBroadcastChannel(hub)

    def handle_frame(self, connection: Connection, raw: str) -> bool:
        """Parse a raw text frame and dispatch it. Bad frames are logged and dropped."""
        try:
            frame = Frame.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f'Malformed frame from {connection.id}: {e.errors()[:1]}')
            return False
        return self.handle_event(connection, frame.event, frame.data)

    def handle_event(self, connection: Connection, event: str, data: Any) -> bool:
        try:
            if event == RealtimeEvent.JOIN_ROOM:
                payload = RoomPayload.model_validate(data)
                self.chat_channel.join_room(connection, payload.user_id, payload.group_id)
            elif event == RealtimeEvent.LEAVE_ROOM:
                payload = RoomPayload.model_validate(data)
                self.chat_channel.leave_room(connection, payload.user_id, payload.group_id)
            elif event == RealtimeEvent.REGISTER_FOR_GROUP_UPDATES:
                payload = RegisterPayload.model_validate(data)
                self.group_channel.register_for_updates(connection, payload.user_id)
            elif event == RealtimeEvent.UNREGISTER_FROM_GROUP_UPDATES:
                self.group_channel.unregister_from_updates(connection)
            else:
                logger.warning(f'Unknown event {event!r} from {connection.id}')
                return False
        except ValidationError as e:
            logger.warning(f'Invalid {event} payload from {connection.id}: {e.errors()[:1]}')
            return False
        return True
