import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Settings are read once per process
os.environ.setdefault("ENV", "test")
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DB_NAME", "healthclub_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-characters-long")
os.environ.setdefault("ADMIN_SECRET_KEY", "admin-test-key")
os.environ.setdefault("APP_API_KEY", "app-test-key")
os.environ.setdefault("CRON_SECRET", "cron-test-secret")
os.environ.setdefault("PUBLIC_BASE_URL", "https://panel.example.com")

from tests.fakes import (  # noqa: E402
    InMemoryNotificationStore,
    ScriptedPushTransport,
    StaticRecipientDirectory,
)


@pytest.fixture
def store() -> InMemoryNotificationStore:
    return InMemoryNotificationStore()


@pytest.fixture
def directory() -> StaticRecipientDirectory:
    return StaticRecipientDirectory([f"token-{i:02d}" for i in range(1, 11)])


@pytest.fixture
def transport() -> ScriptedPushTransport:
    return ScriptedPushTransport()


@pytest.fixture
def dispatcher(store, directory, transport):
    from app.services.dispatcher import NotificationDispatcher
    return NotificationDispatcher(
        store,
        directory,
        transport,
        batch_size=3,
        max_errors=10,
        send_timeout_seconds=0.5,
        public_base_url="https://panel.example.com",
    )


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    from app.main import app
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def admin_cookies() -> dict[str, str]:
    from app.core.security import create_session_cookie
    from app.deps import SESSION_COOKIE_NAME
    return {SESSION_COOKIE_NAME: create_session_cookie({"role": "admin"})}


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, admin_cookies: dict[str, str]) -> AsyncClient:
    for name, value in admin_cookies.items():
        client.cookies.set(name, value)
    return client


@pytest_asyncio.fixture
async def mongo_db() -> AsyncGenerator[None, None]:
    """Beanie initialised against the test database, emptied before each test."""
    from motor.motor_asyncio import AsyncIOMotorClient
    from pymongo.errors import PyMongoError

    from app.core.config import get_settings
    from app.db.init import DOCUMENT_MODELS, init_db

    ping_client = AsyncIOMotorClient(get_settings().mongodb_uri, serverSelectionTimeoutMS=1000)
    try:
        await ping_client.admin.command("ping")
    except PyMongoError:
        pytest.skip("MongoDB not reachable")
    finally:
        ping_client.close()

    await init_db()
    for model in DOCUMENT_MODELS:
        await model.get_motor_collection().delete_many({})
    yield
