from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.deps import get_blob_storage, get_chat_coordinator
from app.models.chat import Group
from app.models.user import User
from app.schemas.chat import MessagePage, MessageSent, parse_client_date, parse_client_time
from app.services.blob_storage import BlobStorage, BlobUploadError
from app.services.chat_service import ChatCoordinator

router = APIRouter()

MESSAGE_IMAGE_FOLDER = 'mensajes'


@router.get('/by-group/{group_id}', response_model=MessagePage)
async def list_messages(
    group_id: int,
    skip: int = Query(0, ge=0, description='Messages to skip, counted from the newest'),
    take: int = Query(100, ge=1, le=500),
    chat: ChatCoordinator = Depends(get_chat_coordinator),
):
    """Back-to-front page of a group's history (oldest first within the page)."""
    return await chat.list_page(group_id, skip, take)


@router.post('', response_model=MessageSent, status_code=status.HTTP_201_CREATED)
async def send_message(
    text: str = Form('', alias='texto', max_length=5000),
    sender_id: int = Form(..., alias='usuario'),
    group_id: int = Form(..., alias='grupo'),
    sent_date: str | None = Form(None, alias='fecha'),
    sent_time: str | None = Form(None, alias='hora'),
    file: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
    chat: ChatCoordinator = Depends(get_chat_coordinator),
    storage: BlobStorage = Depends(get_blob_storage),
):
    """Send a text message, or an image message when a file is attached."""
    try:
        parsed_date = parse_client_date(sent_date)
        parsed_time = parse_client_time(sent_time)
    except ValueError:
        raise HTTPException(status_code=422, detail='fecha must be d/m/yyyy and hora H:MM')

    if not await db.get(User, sender_id):
        raise HTTPException(status_code=404, detail='Sender not found')
    if not await db.get(Group, group_id):
        raise HTTPException(status_code=404, detail='Group not found')

    image_url = None
    if file is not None:
        try:
            image_url = await storage.upload(
                MESSAGE_IMAGE_FOLDER,
                file.filename or 'image',
                await file.read(),
                file.content_type or 'application/octet-stream',
            )
        except BlobUploadError as e:
            raise HTTPException(status_code=502, detail=str(e))
    elif not text:
        raise HTTPException(status_code=422, detail='texto is required without a file')

    message = await chat.send(text, sender_id, group_id, parsed_date, parsed_time, image_url)
    return MessageSent(id=message.id)
