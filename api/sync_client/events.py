"""Typed server -> client realtime events."""
from dataclasses import dataclass
from typing import Any, Union

from app.schemas.chat import GroupOut, MessageOut
from app.schemas.realtime import DeletedGroupPayload, RealtimeEvent


class UnknownEventError(ValueError):
    """Raised for event names the client has no variant for."""
    pass


@dataclass(frozen=True)
class NewMessageEvent:
    message: MessageOut


@dataclass(frozen=True)
class NewGroupEvent:
    group: GroupOut


@dataclass(frozen=True)
class UpdatedGroupEvent:
    group: GroupOut


@dataclass(frozen=True)
class DeletedGroupEvent:
    group_id: int


ServerEvent = Union[NewMessageEvent, NewGroupEvent, UpdatedGroupEvent, DeletedGroupEvent]

SERVER_EVENT_NAMES = (
    RealtimeEvent.NEW_MESSAGE.value,
    RealtimeEvent.NEW_GROUP.value,
    RealtimeEvent.UPDATED_GROUP.value,
    RealtimeEvent.DELETED_GROUP.value,
)


def parse_server_event(name: str, data: Any) -> ServerEvent:
    """Validate a raw payload into its event variant. Raises pydantic.ValidationError on bad data."""
    if name == RealtimeEvent.NEW_MESSAGE:
        return NewMessageEvent(MessageOut.model_validate(data))
    if name == RealtimeEvent.NEW_GROUP:
        return NewGroupEvent(GroupOut.model_validate(data))
    if name == RealtimeEvent.UPDATED_GROUP:
        return UpdatedGroupEvent(GroupOut.model_validate(data))
    if name == RealtimeEvent.DELETED_GROUP:
        return DeletedGroupEvent(DeletedGroupPayload.model_validate(data).id)
    raise UnknownEventError(name)
