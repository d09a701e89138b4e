from app.schemas.user import UserBrief
from app.schemas.chat import (
    GroupCreate,
    GroupRename,
    GroupRedescribe,
    MemberAdd,
    GroupBrief,
    GroupOut,
    GroupMemberOut,
    MessageOut,
    MessagePage,
)
from app.schemas.realtime import RealtimeEvent, Frame

__all__ = [
    'UserBrief',
    'GroupCreate',
    'GroupRename',
    'GroupRedescribe',
    'MemberAdd',
    'GroupBrief',
    'GroupOut',
    'GroupMemberOut',
    'MessageOut',
    'MessagePage',
    'RealtimeEvent',
    'Frame',
]
