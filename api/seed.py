"""Seed script: wipe all data and create test users, a group and a short chat.

Usage (from inside the api container):
    python seed.py

Usage (from host, via docker):
    docker compose exec api python seed.py
"""
import asyncio
from datetime import datetime, timedelta

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import engine, async_session
from app.models.user import User
from app.models.chat import Group, GroupMember, Message, MessageType


# Test accounts to create
TEST_USERS = [
    {'name': 'ana', 'avatar': None},
    {'name': 'luis', 'avatar': None},
    {'name': 'marta', 'avatar': None},
]

TEST_GROUP = {
    'name': 'Padel Thursdays',
    'description': 'Court 3, every Thursday at 19:00',
    'members': ['ana', 'luis'],
}

TEST_CHAT = [
    ('ana', 'Who is in this week?'),
    ('luis', 'Me! Bringing new balls'),
    ('ana', 'Great, see you at 19:00'),
]


async def wipe_all(db: AsyncSession):
    """Truncate all tables in dependency-safe order."""
    tables = [
        'messages',
        'group_members',
        'groups',
        'users',
    ]
    for table in tables:
        await db.execute(text(f'TRUNCATE TABLE {table} RESTART IDENTITY CASCADE'))
    await db.commit()
    print('✓ All tables wiped')


async def create_users(db: AsyncSession) -> dict[str, User]:
    """Create test users."""
    users = {}
    for u in TEST_USERS:
        user = User(name=u['name'], avatar=u['avatar'])
        db.add(user)
        await db.flush()
        users[user.name] = user
        print(f'  ✓ {user.name} — id={user.id}')

    await db.commit()
    return users


async def create_group(db: AsyncSession, users: dict[str, User]):
    """Create the test group with its members and a few messages."""
    group = Group(name=TEST_GROUP['name'], description=TEST_GROUP['description'])
    db.add(group)
    await db.flush()

    for name in TEST_GROUP['members']:
        db.add(GroupMember(user_id=users[name].id, group_id=group.id))

    sent_at = datetime.now().replace(second=0, microsecond=0) - timedelta(minutes=len(TEST_CHAT))
    for offset, (sender, body) in enumerate(TEST_CHAT):
        at = sent_at + timedelta(minutes=offset)
        db.add(Message(
            text=body,
            sender_id=users[sender].id,
            group_id=group.id,
            sent_date=at.date(),
            sent_time=at.time(),
            message_type=MessageType.TEXT,
        ))

    await db.commit()
    print(f'  ✓ {group.name} — id={group.id}, {len(TEST_GROUP["members"])} members, {len(TEST_CHAT)} messages')


async def main():
    print()
    print('=' * 50)
    print('  Quedadas Seed Script')
    print('=' * 50)
    print()

    async with async_session() as db:
        print('[1/3] Wiping all data...')
        await wipe_all(db)

        print('[2/3] Creating test users...')
        users = await create_users(db)

        print('[3/3] Creating test group...')
        await create_group(db, users)

    await engine.dispose()

    print()
    print('Done! Ready for testing.')
    print()


if __name__ == '__main__':
    asyncio.run(main())
