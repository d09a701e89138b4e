"""Group mutation use-cases: persist, reload the full aggregate, broadcast it."""
import logging
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.chat import GroupMember
from app.schemas.chat import GroupOut
from app.services.channels import GroupBroadcastChannel
from app.services.group_store import GroupStore
from app.services.payloads import group_out

logger = logging.getLogger(__name__)


class GroupCoordinator:
    """
    Every mutation commits first, then reloads the aggregate in a fresh read
    and broadcasts it. The three steps are not atomic: a concurrent mutation
    between commit and reload shows up in the broadcast.
    """

    def __init__(self, db: AsyncSession, channel: GroupBroadcastChannel):
        self.db = db
        self.store = GroupStore(db)
        self.channel = channel

    async def list_for_user(self, user_id: int) -> list[GroupOut]:
        groups = await self.store.list_for_user(user_id)
        return [group_out(g) for g in groups]

    async def create(self, name: str, description: str, member_ids: list[int]) -> GroupOut | None:
        """Create a group with one membership per id (the caller includes the creator)."""
        group = await self.store.insert(name, description)
        for user_id in dict.fromkeys(member_ids):
            await self.store.add_member(user_id, group.id)
        await self.db.commit()

        return await self._reload_and_emit(group.id, self.channel.emit_new_group)

    async def rename(self, group_id: int, name: str) -> int:
        return await self._update_field(group_id, name=name)

    async def redescribe(self, group_id: int, description: str) -> int:
        return await self._update_field(group_id, description=description)

    async def rephoto(self, group_id: int, photo_url: str) -> int:
        return await self._update_field(group_id, photo_url=photo_url)

    async def add_member(self, user_id: int, group_id: int) -> GroupMember:
        member = await self.store.add_member(user_id, group_id)
        await self.db.commit()

        await self._reload_and_emit(group_id, self.channel.emit_updated_group)
        return member

    async def remove_member(self, user_id: int, group_id: int) -> int:
        """Delete the (user, group) membership. Missing rows are a no-op; the broadcast still happens."""
        members = await self.store.find_memberships(user_id, group_id)
        removed = await self.store.delete_memberships(members)
        await self.db.commit()

        await self._reload_and_emit(group_id, self.channel.emit_updated_group)
        return removed

    async def _update_field(self, group_id: int, **values) -> int:
        affected = await self.store.update_fields(group_id, **values)
        await self.db.commit()

        await self._reload_and_emit(group_id, self.channel.emit_updated_group)
        return affected

    async def _reload_and_emit(
        self, group_id: int, emit: Callable[[GroupOut], int]
    ) -> GroupOut | None:
        group = await self.store.load_aggregate(group_id)
        if group is None:
            logger.warning(f'Group {group_id} could not be reloaded; clients stay stale until refresh')
            return None

        aggregate = group_out(group)
        try:
            emit(aggregate)
        except Exception as e:
            logger.error(f'Broadcast for group {group_id} failed: {e}', exc_info=True)
        return aggregate
