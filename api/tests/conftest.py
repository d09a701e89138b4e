import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.database import Base, get_db
from app.deps import get_blob_storage, get_hub
from app.models import User
from app.services.blob_storage import BlobStorage
from app.services.realtime_hub import Connection, RealtimeHub


# In-memory database shared by every session of a test
TEST_DATABASE_URL = 'sqlite+aiosqlite://'
TEST_BUCKET = 'quedadas-test'


class RecordingConnection(Connection):
    """Connection that keeps every frame it is sent."""

    def __init__(self, user_id: int | None = None):
        super().__init__(user_id=user_id)
        self.frames: list[tuple[str, dict]] = []

    def send(self, event, data):
        self.frames.append((event, data))

    def payloads(self, event: str) -> list[dict]:
        return [data for name, data in self.frames if name == event]


class BrokenConnection(Connection):
    def send(self, event, data):
        raise RuntimeError('socket already closed')


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Database session for direct queries in tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def recording_connection():
    return RecordingConnection


@pytest.fixture
def broken_connection():
    return BrokenConnection


@pytest.fixture
def uploads():
    """Requests received by the fake blob store."""
    return []


@pytest.fixture
async def blob_storage(uploads):
    def handler(request: httpx.Request) -> httpx.Response:
        uploads.append(request)
        return httpx.Response(200)

    storage = BlobStorage(TEST_BUCKET, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    yield storage
    await storage.aclose()


@pytest.fixture
async def client(session_factory, hub, blob_storage):
    """Async HTTP client for testing."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_hub] = lambda: hub
    app.dependency_overrides[get_blob_storage] = lambda: blob_storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def users(session_factory):
    """Ana, Luis and Marta, ids 1..3."""
    async with session_factory() as session:
        created = [
            User(name='ana', avatar='https://cdn.example.com/ana.png'),
            User(name='luis'),
            User(name='marta'),
        ]
        session.add_all(created)
        await session.commit()
        return created
