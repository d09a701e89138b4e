from datetime import date, time, datetime

from pydantic import BaseModel, Field

from app.schemas.user import UserBrief


class GroupCreate(BaseModel):
    """Schema for creating a group. The creator must be listed in member_ids."""
    name: str = Field(..., min_length=1, max_length=100, alias='nombre')
    description: str = Field('', max_length=500, alias='descripcion')
    member_ids: list[int] = Field(..., min_length=1, alias='usuarios')

    class Config:
        populate_by_name = True


class GroupRename(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, alias='nombre')

    class Config:
        populate_by_name = True


class GroupRedescribe(BaseModel):
    description: str = Field(..., max_length=500, alias='descripcion')

    class Config:
        populate_by_name = True


class MemberAdd(BaseModel):
    user_id: int = Field(..., alias='usuario')

    class Config:
        populate_by_name = True


class GroupMemberOut(BaseModel):
    """Membership row with its user."""
    id: int
    user: UserBrief = Field(..., alias='usuario')

    class Config:
        populate_by_name = True


class GroupBrief(BaseModel):
    """Group without its member list (embedded in messages)."""
    id: int
    name: str = Field(..., alias='nombre')
    description: str = Field('', alias='descripcion')
    photo_url: str | None = Field(None, alias='imagen')

    class Config:
        populate_by_name = True


class GroupOut(GroupBrief):
    """Full group aggregate: group + memberships + users."""
    members: list[GroupMemberOut] = Field(default_factory=list, alias='usuariogrupo')

    def has_member(self, user_id: int) -> bool:
        return any(m.user.id == user_id for m in self.members)


class MessageTypeOut(BaseModel):
    id: int
    label: str = Field(..., alias='tipo')

    class Config:
        populate_by_name = True


class MessageOut(BaseModel):
    """Fully hydrated message (sender, group and type resolved)."""
    id: int
    text: str = Field(..., alias='texto')
    sender: UserBrief = Field(..., alias='usuario')
    group: GroupBrief = Field(..., alias='grupo')
    sent_date: date = Field(..., alias='fecha')
    sent_time: time = Field(..., alias='hora')
    message_type: MessageTypeOut = Field(..., alias='tipomensaje')

    class Config:
        populate_by_name = True


class MessagePage(BaseModel):
    """One back-to-front page of a group's history, oldest first."""
    messages: list[MessageOut] = Field(default_factory=list, alias='mensajes')
    has_more: bool = Field(False, alias='hayMas')

    class Config:
        populate_by_name = True


class MessageSent(BaseModel):
    id: int


class MembershipCreated(BaseModel):
    id: int


class UpdateResult(BaseModel):
    affected: int


class RemoveResult(BaseModel):
    removed: int


def parse_client_date(value: str | None) -> date:
    """Parse the app's 'd/m/yyyy' date; defaults to today when missing."""
    if not value:
        return datetime.now().date()
    day, month, year = (int(part) for part in value.strip().split('/'))
    return date(year, month, day)


def parse_client_time(value: str | None) -> time:
    """Parse the app's 'H:MM' (optionally 'H:MM:SS') time; defaults to now."""
    if not value:
        return datetime.now().time().replace(microsecond=0)
    parts = [int(part) for part in value.strip().split(':')]
    if len(parts) not in (2, 3):
        raise ValueError(f'Invalid time: {value!r}')
    return time(*parts)
