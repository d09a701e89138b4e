from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class RealtimeEvent(str, Enum):
    # client -> server
    JOIN_ROOM = 'joinRoom'
    LEAVE_ROOM = 'leaveRoom'
    REGISTER_FOR_GROUP_UPDATES = 'registerForGroupUpdates'
    UNREGISTER_FROM_GROUP_UPDATES = 'unregisterFromGroupUpdates'
    # server -> clients
    NEW_MESSAGE = 'newMessage'
    NEW_GROUP = 'newGroup'
    UPDATED_GROUP = 'updatedGroup'
    DELETED_GROUP = 'deletedGroup'


class Frame(BaseModel):
    """Envelope of every WebSocket frame, in both directions."""
    event: str
    data: Any = None


class RoomPayload(BaseModel):
    user_id: int = Field(..., alias='userId')
    group_id: int = Field(..., alias='groupId')

    class Config:
        populate_by_name = True


class RegisterPayload(BaseModel):
    user_id: int = Field(..., alias='userId')

    class Config:
        populate_by_name = True


class DeletedGroupPayload(BaseModel):
    id: int
