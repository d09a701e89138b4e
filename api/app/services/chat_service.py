"""Message send and history use-cases: persist, then fan out to the group's room."""
import logging
from datetime import date, time

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.chat import Message, MessageType
from app.schemas.chat import MessagePage
from app.services.channels import ChatBroadcastChannel
from app.services.message_store import MessageStore
from app.services.payloads import message_out

logger = logging.getLogger(__name__)


class ChatCoordinator:
    def __init__(self, db: AsyncSession, channel: ChatBroadcastChannel):
        self.db = db
        self.store = MessageStore(db)
        self.channel = channel

    async def send(
        self,
        text: str,
        sender_id: int,
        group_id: int,
        sent_date: date,
        sent_time: time,
        image_url: str | None = None,
    ) -> Message:
        """
        Persist a message and broadcast it to the group's room.

        With an image_url (already uploaded) the message becomes an IMAGE
        message whose text is the URL. Returns the inserted row; a failed
        broadcast does not undo the send.
        """
        message_type = MessageType.TEXT
        if image_url:
            text = image_url
            message_type = MessageType.IMAGE

        message = await self.store.insert(
            text=text,
            sender_id=sender_id,
            group_id=group_id,
            sent_date=sent_date,
            sent_time=sent_time,
            message_type=message_type,
        )
        await self.db.commit()

        full = await self.store.get_full(message.id)
        if full is None:
            logger.warning(f'Message {message.id} vanished after insert; skipping broadcast')
            return message

        try:
            self.channel.emit_new_message(group_id, message_out(full))
        except Exception as e:
            logger.error(f'Broadcast of message {message.id} failed: {e}', exc_info=True)

        return message

    async def list_page(self, group_id: int, skip: int = 0, take: int = 100) -> MessagePage:
        messages, has_more = await self.store.list_page(group_id, skip, take)
        return MessagePage(
            messages=[message_out(m) for m in messages],
            has_more=has_more,
        )
