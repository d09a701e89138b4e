"""ORM -> wire payload builders for groups and messages."""
from app.models.user import User
from app.models.chat import Group, GroupMember, Message, MessageType
from app.schemas.user import UserBrief
from app.schemas.chat import GroupBrief, GroupMemberOut, GroupOut, MessageOut, MessageTypeOut

MESSAGE_TYPE_LABELS = {
    MessageType.TEXT: 'texto',
    MessageType.IMAGE: 'imagen',
}


def user_brief(user: User) -> UserBrief:
    return UserBrief(id=user.id, name=user.name, avatar=user.avatar)


def group_brief(group: Group) -> GroupBrief:
    return GroupBrief(
        id=group.id,
        name=group.name,
        description=group.description,
        photo_url=group.photo_url,
    )


def member_out(member: GroupMember) -> GroupMemberOut:
    return GroupMemberOut(id=member.id, user=user_brief(member.user))


def group_out(group: Group) -> GroupOut:
    """Full aggregate. Requires members and members.user to be loaded."""
    return GroupOut(
        id=group.id,
        name=group.name,
        description=group.description,
        photo_url=group.photo_url,
        members=[member_out(m) for m in group.members],
    )


def message_out(message: Message) -> MessageOut:
    """Hydrated message. Requires sender and group to be loaded."""
    message_type = MessageType(message.message_type)
    return MessageOut(
        id=message.id,
        text=message.text,
        sender=user_brief(message.sender),
        group=group_brief(message.group),
        sent_date=message.sent_date,
        sent_time=message.sent_time,
        message_type=MessageTypeOut(id=message_type.value, label=MESSAGE_TYPE_LABELS[message_type]),
    )
