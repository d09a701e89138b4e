from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.services.blob_storage import BlobStorage
from app.services.channels import ChatBroadcastChannel, GroupBroadcastChannel
from app.services.chat_service import ChatCoordinator
from app.services.group_service import GroupCoordinator
from app.services.realtime_hub import RealtimeHub


def get_hub(request: Request) -> RealtimeHub:
    return request.app.state.hub


def get_blob_storage(request: Request) -> BlobStorage:
    return request.app.state.blob_storage


def get_chat_coordinator(
    db: AsyncSession = Depends(get_db),
    hub: RealtimeHub = Depends(get_hub),
) -> ChatCoordinator:
    return ChatCoordinator(db, ChatBroadcastChannel(hub))


def get_group_coordinator(
    db: AsyncSession = Depends(get_db),
    hub: RealtimeHub = Depends(get_hub),
) -> GroupCoordinator:
    return GroupCoordinator(db, GroupBroadcastChannel(hub))
