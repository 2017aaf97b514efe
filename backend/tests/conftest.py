"""
Shared fixtures for the TeamDesk test suite.

Settings are read once at import time, so the environment is fixed here
before anything from teamdesk is imported. Each test gets its own schema
on a throwaway SQLite file and an httpx client bound to the ASGI app that
shares the test's session.
"""
import os
from typing import AsyncGenerator

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

TEST_DATABASE_URL = "sqlite+aiosqlite:///./teamdesk_test.db"

os.environ.update({
    "ENVIRONMENT": "testing",
    "DATABASE_URL": TEST_DATABASE_URL,
    "SECRET_KEY": "teamdesk-test-secret",
    "JWT_SECRET_KEY": "teamdesk-test-jwt-secret",
    "RATE_LIMIT_ENABLED": "false",
    "BCRYPT_ROUNDS": "4",
    "SMTP_USER": "",
    "SMTP_PASSWORD": "",
    "LOG_FILE": "",
})

from teamdesk.core.config import settings  # noqa: E402
from teamdesk.core.database import Base, get_db  # noqa: E402
from teamdesk.core.security import create_token_pair, get_password_hash  # noqa: E402
from teamdesk.main import app  # noqa: E402
from teamdesk.models.stock import StockItem  # noqa: E402
from teamdesk.models.user import User, default_preferences  # noqa: E402
from teamdesk.services.connection_manager import connection_manager  # noqa: E402
from teamdesk.services.email_service import email_service  # noqa: E402

fake = Faker()

engine = create_async_engine(TEST_DATABASE_URL)
SessionForTests = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionForTests() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """API client whose requests run on the test's own session"""
    async def shared_session():
        yield db_session

    app.dependency_overrides[get_db] = shared_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://teamdesk.test") as api:
        yield api
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def restore_email_settings():
    """SMTP settings live on a singleton; undo any test that changes them"""
    saved = dict(vars(email_service))
    yield
    vars(email_service).clear()
    vars(email_service).update(saved)


class FakeSocket:
    """Stands in for a WebSocket; keeps every frame it is sent"""

    def __init__(self):
        self.frames = []

    async def accept(self):
        pass

    async def send_json(self, message):
        self.frames.append(message)

    def events(self, event_type: str) -> list:
        return [f for f in self.frames if f["type"] == event_type]


@pytest.fixture
async def live_sockets():
    """
    Open fake sockets on the shared connection manager:

        socket = await live_sockets(user.id)
    """
    opened = []

    async def open_socket(user_id: str) -> FakeSocket:
        socket = FakeSocket()
        await connection_manager.connect(socket, user_id)
        opened.append((socket, user_id))
        return socket

    yield open_socket

    for socket, user_id in opened:
        await connection_manager.disconnect(socket, user_id)


async def make_user(db_session: AsyncSession, password: str, **overrides) -> User:
    fields = {
        "username": fake.unique.user_name(),
        "email": fake.unique.email(),
        "full_name": fake.name(),
        "is_active": True,
        **overrides,
    }
    user = User(
        hashed_password=get_password_hash(password),
        notification_preferences=default_preferences(),
        **fields,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def headers_for(user: User) -> dict:
    return {"Authorization": "Bearer " + create_token_pair(user)["access_token"]}


@pytest.fixture
def test_user_data() -> dict:
    return {
        "username": fake.unique.user_name(),
        "password": "testpassword123",
        "email": fake.unique.email(),
        "full_name": fake.name(),
    }


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "testpassword123")


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "otherpassword123")


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "adminpassword123", is_admin=True)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return headers_for(test_user)


@pytest.fixture
def other_auth_headers(other_user: User) -> dict:
    return headers_for(other_user)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
async def stock_items(db_session: AsyncSession) -> dict:
    """Two priced stock items keyed by name"""
    items = {
        "laptop": StockItem(name="Laptop", cost=950.0, quantity=10),
        "mouse": StockItem(name="Mouse", cost=25.0, quantity=40),
    }
    db_session.add_all(items.values())
    await db_session.commit()
    return items


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point file storage at a per-test directory"""
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    return tmp_path / "uploads"
