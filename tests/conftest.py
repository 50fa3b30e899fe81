"""
Pytest configuration and fixtures for tests.
Provides reusable test fixtures for database, users, and data setup.
"""
import pytest
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import get_db
from app.core.rate_limit import limiter
from app.core.security import create_access_token
from app.core.session_registry import SessionRegistry
from app.core.websocket import ConnectionManager
from app.dependencies import get_connection_manager, get_current_user
from app.main import fastapi_app
from app.models.base import Base


# In-memory SQLite shared by every connection of the engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    TestSessionLocal = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
async def shared_sessionmaker(tmp_path):
    """
    Session factory over a file-backed database.

    Each session gets its own connection, so two sessions behave like two
    concurrent requests.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'messaging.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


async def _create_user(db_session: AsyncSession, name: str, email: str, **kwargs):
    from app.models.user import User

    user = User(name=name, email=email, **kwargs)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession):
    """Create a test user."""
    return await _create_user(db_session, "Alice", "alice@example.com", status="Available")


@pytest.fixture
async def test_user_2(db_session: AsyncSession):
    """Create a second test user."""
    return await _create_user(db_session, "Bob", "bob@example.com")


@pytest.fixture
async def test_user_3(db_session: AsyncSession):
    """Create a third test user."""
    return await _create_user(db_session, "Carol", "carol@example.com")


@pytest.fixture
async def test_contacts(db_session: AsyncSession, test_user, test_user_2, test_user_3):
    """Alice and Bob have each other as contacts; Carol has Alice."""
    from app.repositories.user_repo import ContactRepository

    repo = ContactRepository(db_session)
    await repo.add_contacts(test_user.id, [test_user_2.id])
    await repo.add_contacts(test_user_2.id, [test_user.id])
    await repo.add_contacts(test_user_3.id, [test_user.id])
    await db_session.commit()


@pytest.fixture
async def test_message(db_session: AsyncSession, test_user, test_user_2):
    """Create a test message from Alice to Bob."""
    from app.services.message_service import MessageService

    message = await MessageService(db_session).create(
        sender_id=test_user.id,
        receiver_id=test_user_2.id,
        content="Test message content",
    )
    await db_session.commit()
    return message


@pytest.fixture
def auth_headers(test_user):
    """Create authentication headers for the first test user."""
    return {"Authorization": f"Bearer {create_access_token(test_user.id)}"}


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Rate limit counters are process-wide; start every test from zero."""
    limiter.reset()
    yield


@pytest.fixture
def mock_websocket_manager(mocker):
    """Mock realtime gateway used by the HTTP routes."""
    mock_manager = mocker.AsyncMock(spec=ConnectionManager)
    return mock_manager


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, test_user, mock_websocket_manager) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client authenticated as test_user."""

    async def override_get_db():
        yield db_session

    async def override_get_current_user():
        return test_user

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_current_user] = override_get_current_user
    fastapi_app.dependency_overrides[get_connection_manager] = lambda: mock_websocket_manager

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    # Clear overrides after test
    fastapi_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def unauth_client(db_session: AsyncSession, mock_websocket_manager) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client WITHOUT authentication override."""

    async def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_connection_manager] = lambda: mock_websocket_manager

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def gateway(db_session: AsyncSession, mocker):
    """
    Connection manager wired to the test database with Socket.IO I/O mocked.

    sio.emit / enter_room / leave_room are AsyncMocks so tests can assert
    on what would have been sent.
    """

    @asynccontextmanager
    async def session_factory():
        yield db_session

    manager = ConnectionManager(registry=SessionRegistry(), session_factory=session_factory)
    manager.sio.emit = mocker.AsyncMock()
    manager.sio.enter_room = mocker.AsyncMock()
    manager.sio.leave_room = mocker.AsyncMock()
    return manager
