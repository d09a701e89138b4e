from app.models.user import User
from app.models.chat import Group, GroupMember, Message, MessageType

__all__ = [
    'User',
    'Group',
    'GroupMember',
    'Message',
    'MessageType',
]
