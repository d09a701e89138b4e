"""Persistence and back-to-front pagination of group chat messages."""
from datetime import date, time

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.chat import Message, MessageType


class MessageStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(
        self,
        text: str,
        sender_id: int,
        group_id: int,
        sent_date: date,
        sent_time: time,
        message_type: MessageType = MessageType.TEXT,
    ) -> Message:
        message = Message(
            text=text,
            sender_id=sender_id,
            group_id=group_id,
            sent_date=sent_date,
            sent_time=sent_time,
            message_type=int(message_type),
        )
        self.db.add(message)
        await self.db.flush()
        return message

    async def get_full(self, message_id: int) -> Message | None:
        """Message with sender and group loaded."""
        result = await self.db.execute(
            select(Message)
            .options(selectinload(Message.sender), selectinload(Message.group))
            .where(Message.id == message_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def count_for_group(self, group_id: int) -> int:
        count = await self.db.scalar(
            select(func.count()).select_from(Message).where(Message.group_id == group_id)
        )
        return count or 0

    async def list_page(self, group_id: int, skip: int, take: int) -> tuple[list[Message], bool]:
        """
        Page through a group's history from the newest end.

        skip counts messages already loaded from the newest side; the page is
        the `take` messages just older than those, returned oldest first.
        The flag tells whether anything older remains (total > skip + take).
        """
        total = await self.count_for_group(group_id)
        end = max(0, total - skip)
        start = max(0, end - take)
        has_more = total > skip + take

        if end == start:
            return [], has_more

        result = await self.db.execute(
            select(Message)
            .options(selectinload(Message.sender), selectinload(Message.group))
            .where(Message.group_id == group_id)
            .order_by(Message.sent_date, Message.sent_time, Message.id)
            .offset(start)
            .limit(end - start)
        )
        return list(result.scalars().all()), has_more
