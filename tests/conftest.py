"""Common test fixtures for the Noter API."""
import os

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./noter-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx
import pytest

from app.core.cache import ResponseCache
from app.core.database import Base, create_engine, create_session_factory
from app.models.folder import Folder
from app.models.note import Note
from app.models.user import User
from main import app as fastapi_app
from tests.fakes import FakeRedis


@pytest.fixture
def anyio_backend():
    """Restrict anyio tests to asyncio only."""
    return "asyncio"


@pytest.fixture
async def engine(anyio_backend, tmp_path):
    """File-backed SQLite so concurrent sessions see the same data."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'noter.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return ResponseCache(fake_redis, timeout=0.2, note_ttl=60, explore_ttl=30)


@pytest.fixture
def app(engine, session_factory, cache):
    fastapi_app.state.engine = engine
    fastapi_app.state.session_factory = session_factory
    fastapi_app.state.cache = cache
    return fastapi_app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_user(session_factory):
    """Insert a user directly and return it."""
    async def _make(name: str, email: str = None, hashed_password: str = None) -> User:
        async with session_factory() as session:
            user = User(name=name, email=email or f"{name.lower()}@example.com", hashed_password=hashed_password)
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user
    return _make


@pytest.fixture
def make_note(session_factory):
    async def _make(author: User, title: str, content: str = "body", is_public: bool = True, folder_id: int = None) -> Note:
        async with session_factory() as session:
            note = Note(title=title, content=content, is_public=is_public, author_id=author.id, folder_id=folder_id)
            session.add(note)
            await session.commit()
            await session.refresh(note)
            return note
    return _make


@pytest.fixture
def make_folder(session_factory):
    async def _make(author: User, name: str, is_public: bool = True, parent_id: int = None) -> Folder:
        async with session_factory() as session:
            folder = Folder(name=name, is_public=is_public, author_id=author.id, parent_id=parent_id)
            session.add(folder)
            await session.commit()
            await session.refresh(folder)
            return folder
    return _make


@pytest.fixture
async def alice(make_user):
    return await make_user("Alice")


@pytest.fixture
async def bob(make_user):
    return await make_user("Bob")
