from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.deps import get_blob_storage, get_group_coordinator
from app.models.chat import Group
from app.models.user import User
from app.schemas.chat import (
    GroupCreate, GroupOut, GroupRename, GroupRedescribe, MemberAdd,
    MembershipCreated, RemoveResult, UpdateResult,
)
from app.services.blob_storage import BlobStorage, BlobUploadError
from app.services.group_service import GroupCoordinator

router = APIRouter()

GROUP_PHOTO_FOLDER = 'fotos-grupo'


async def require_group(db: AsyncSession, group_id: int) -> Group:
    group = await db.get(Group, group_id)
    if not group:
        raise HTTPException(status_code=404, detail='Group not found')
    return group


async def require_users(db: AsyncSession, user_ids: list[int]):
    for user_id in user_ids:
        if not await db.get(User, user_id):
            raise HTTPException(status_code=404, detail=f'User {user_id} not found')


@router.get('/by-user/{user_id}', response_model=list[GroupOut])
async def list_groups_for_user(
    user_id: int,
    groups: GroupCoordinator = Depends(get_group_coordinator),
):
    """All groups the user belongs to, with members."""
    return await groups.list_for_user(user_id)


@router.post('', response_model=GroupOut | None, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    db: AsyncSession = Depends(get_db),
    groups: GroupCoordinator = Depends(get_group_coordinator),
):
    """Create a group. `usuarios` must already include the creator."""
    await require_users(db, group_data.member_ids)
    return await groups.create(group_data.name, group_data.description, group_data.member_ids)


@router.post('/{group_id}/name', response_model=UpdateResult)
async def rename_group(
    group_id: int,
    update_data: GroupRename,
    db: AsyncSession = Depends(get_db),
    groups: GroupCoordinator = Depends(get_group_coordinator),
):
    await require_group(db, group_id)
    affected = await groups.rename(group_id, update_data.name)
    return UpdateResult(affected=affected)


@router.post('/{group_id}/description', response_model=UpdateResult)
async def redescribe_group(
    group_id: int,
    update_data: GroupRedescribe,
    db: AsyncSession = Depends(get_db),
    groups: GroupCoordinator = Depends(get_group_coordinator),
):
    await require_group(db, group_id)
    affected = await groups.redescribe(group_id, update_data.description)
    return UpdateResult(affected=affected)


@router.post('/{group_id}/photo', response_model=UpdateResult)
async def rephoto_group(
    group_id: int,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    groups: GroupCoordinator = Depends(get_group_coordinator),
    storage: BlobStorage = Depends(get_blob_storage),
):
    """Upload a new group photo and point the group at it."""
    await require_group(db, group_id)
    try:
        url = await storage.upload(
            GROUP_PHOTO_FOLDER,
            file.filename or 'photo',
            await file.read(),
            file.content_type or 'application/octet-stream',
        )
    except BlobUploadError as e:
        raise HTTPException(status_code=502, detail=str(e))

    affected = await groups.rephoto(group_id, url)
    return UpdateResult(affected=affected)


@router.post('/{group_id}/members', response_model=MembershipCreated, status_code=status.HTTP_201_CREATED)
async def add_member(
    group_id: int,
    request: MemberAdd,
    db: AsyncSession = Depends(get_db),
    groups: GroupCoordinator = Depends(get_group_coordinator),
):
    await require_group(db, group_id)
    await require_users(db, [request.user_id])
    try:
        member = await groups.add_member(request.user_id, group_id)
    except IntegrityError:
        raise HTTPException(status_code=409, detail='User is already a member of this group')
    return MembershipCreated(id=member.id)


@router.delete('/{group_id}/members/{user_id}', response_model=RemoveResult)
async def remove_member(
    group_id: int,
    user_id: int,
    groups: GroupCoordinator = Depends(get_group_coordinator),
):
    """Remove a membership. Removing a non-member still re-broadcasts the group."""
    removed = await groups.remove_member(user_id, group_id)
    return RemoveResult(removed=removed)
