"""Persistence of groups and memberships."""
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.chat import Group, GroupMember


def _aggregate_options():
    return selectinload(Group.members).selectinload(GroupMember.user)


class GroupStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(self, name: str, description: str) -> Group:
        group = Group(name=name, description=description)
        self.db.add(group)
        await self.db.flush()
        return group

    async def update_fields(self, group_id: int, **values) -> int:
        """Update columns of one group. Returns affected row count."""
        result = await self.db.execute(
            update(Group).where(Group.id == group_id).values(**values)
        )
        return result.rowcount

    async def add_member(self, user_id: int, group_id: int) -> GroupMember:
        member = GroupMember(user_id=user_id, group_id=group_id)
        self.db.add(member)
        await self.db.flush()
        return member

    async def find_memberships(self, user_id: int, group_id: int) -> list[GroupMember]:
        result = await self.db.execute(
            select(GroupMember).where(
                GroupMember.user_id == user_id,
                GroupMember.group_id == group_id,
            )
        )
        return list(result.scalars().all())

    async def delete_memberships(self, members: list[GroupMember]) -> int:
        for member in members:
            await self.db.delete(member)
        await self.db.flush()
        return len(members)

    async def load_aggregate(self, group_id: int) -> Group | None:
        """Group + memberships + users, bypassing stale identity-map state."""
        result = await self.db.execute(
            select(Group)
            .options(_aggregate_options())
            .where(Group.id == group_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: int) -> list[Group]:
        member_of = select(GroupMember.group_id).where(GroupMember.user_id == user_id)
        result = await self.db.execute(
            select(Group)
            .options(_aggregate_options())
            .where(Group.id.in_(member_of))
            .order_by(Group.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
