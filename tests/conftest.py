from contextlib import contextmanager
from typing import AsyncGenerator, Optional

import fakeredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.base import Base
from tests.stubs import InMemoryCatalog, PhonePeStub, RecordingNotifier

# Register store tables on Base.metadata
import services.store_service.models  # noqa: F401

settings = get_settings()


# ---------------------------------------------------------------------------
# Users and tokens
# ---------------------------------------------------------------------------


def make_member_user(
    user_id: str = "user-123",
    email: str = "buyer@test.com",
    name: str = "Test Buyer",
) -> AuthUser:
    return AuthUser(sub=user_id, email=email, name=name, role="authenticated")


def make_admin_user(user_id: str = "admin-1") -> AuthUser:
    return AuthUser(sub=user_id, email="admin@test.com", name="Admin", role="admin")


def auth_headers(user: AuthUser) -> dict:
    """Bearer header for a real HS256 token, decoded by the auth dependency."""
    payload = {
        "sub": user.user_id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
    }
    token = jwt.encode(payload, settings.SUPABASE_JWT_SECRET, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@contextmanager
def override_dependency(app, dependency, replacement):
    """Temporarily swap a single dependency on ``app``."""
    previous = app.dependency_overrides.get(dependency)
    app.dependency_overrides[dependency] = replacement
    try:
        yield
    finally:
        if previous is None:
            app.dependency_overrides.pop(dependency, None)
        else:
            app.dependency_overrides[dependency] = previous


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps the single connection alive so every session sees the
    same schema and rows.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def redis(redis_server):
    client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def catalog() -> InMemoryCatalog:
    return InMemoryCatalog()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def phonepe() -> PhonePeStub:
    return PhonePeStub()


@pytest.fixture
def gateway(phonepe):
    return phonepe.client()


@pytest.fixture
def manager(db_session, gateway, redis, notifier):
    from services.store_service.services.order_lifecycle import OrderLifecycleManager

    return OrderLifecycleManager(db_session, gateway, redis, notifier)


@pytest.fixture
def member() -> AuthUser:
    return make_member_user()


@pytest.fixture
def admin() -> AuthUser:
    return make_admin_user()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def store_app(db_session, redis, catalog, gateway, notifier):
    from libs.common.redis import get_redis
    from libs.db.session import get_async_db
    from services.store_service.app.main import app
    from services.store_service.routers._helpers import (
        get_catalog_client,
        get_gateway,
        get_notifier,
    )

    async def override_db():
        yield db_session

    async def override_redis():
        return redis

    app.dependency_overrides[get_async_db] = override_db
    app.dependency_overrides[get_redis] = override_redis
    app.dependency_overrides[get_catalog_client] = lambda: catalog
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def store_client(store_app) -> AsyncGenerator[AsyncClient, None]:
    # Unhandled errors must come back as 500 responses, not raise in the test
    transport = ASGITransport(app=store_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def member_headers(user: Optional[AuthUser] = None) -> dict:
    return auth_headers(user or make_member_user())


def admin_headers(user: Optional[AuthUser] = None) -> dict:
    return auth_headers(user or make_admin_user())
