"""
Pytest configuration and shared fixtures.

This file provides common fixtures for all tests.

Tests run against an in-memory SQLite database (aiosqlite) created from the
SQLModel metadata for every test function, so no MariaDB or Redis instance is
needed. Audit dispatch to the arq queue is replaced by an AsyncMock.
"""

import os

# Settings are read at import time: configure them before importing academy
os.environ["SECRET_KEY"] = "test-secret-key-for-access-tokens-0123456789"
os.environ["REFRESH_SECRET_KEY"] = "test-secret-key-for-refresh-tokens-0123456789"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_FORMAT"] = "console"

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402
from unittest.mock import AsyncMock, patch  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import academy.models  # noqa: E402, F401  (registers every table on SQLModel.metadata)
from academy.config import AccountStatus, SettingKey, UserRole  # noqa: E402
from academy.core.database import get_db  # noqa: E402
from academy.core.fingerprint import DEVICE_ID_HEADER  # noqa: E402
from academy.core.security import get_password_hash  # noqa: E402
from academy.main import app as main_app  # noqa: E402
from academy.models.account import Accounts  # noqa: E402
from academy.services.settings_store import SettingsStore  # noqa: E402

TEST_PASSWORD = "TestPassword123"

# Distinct user agents produce distinct fingerprints (the test client IP is fixed)
LAPTOP_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/126.0"
PHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_5 like Mac OS X) Mobile/15E148 Safari/604.1"
TABLET_UA = "Mozilla/5.0 (iPad; CPU OS 17_5 like Mac OS X) Mobile/15E148 Safari/604.1"


@pytest.fixture(scope="function")
async def engine():
    """
    Create a fresh in-memory database for each test function.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture(scope="function")
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new database session for each test."""
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def mock_enqueue():
    """
    Replace arq dispatch for audit events.

    Usage:
        async def test_force_logout(mock_enqueue, ...):
            ...
            assert mock_enqueue.await_args.kwargs["action"] == "FORCE_LOGOUT"
    """
    with patch("academy.services.audit.enqueue_job", new=AsyncMock(return_value="job-1")) as mock:
        yield mock


@pytest.fixture(scope="function")
def app(db_session: AsyncSession) -> FastAPI:
    """
    Create FastAPI app with test database session.

    This overrides the database dependency to use the test session.
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    main_app.dependency_overrides[get_db] = override_get_db

    yield main_app

    main_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async HTTP client for testing API endpoints.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/api/v1/users/me/devices")
            assert response.status_code == 401
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# =============================================================================
# Test Data Fixtures
# =============================================================================


async def _create_account(
    db: AsyncSession,
    email: str,
    role: UserRole,
    status: str = AccountStatus.ACTIVE,
) -> Accounts:
    account = Accounts(
        name=email.split("@")[0],
        email=email,
        password_hash=get_password_hash(TEST_PASSWORD),
        role=role.value,
        status=status,
    )
    db.add(account)
    await db.commit()
    await db.refresh(account)
    return account


@pytest.fixture
async def student(db_session: AsyncSession) -> Accounts:
    return await _create_account(db_session, "student@example.com", UserRole.STUDENT)


@pytest.fixture
async def other_student(db_session: AsyncSession) -> Accounts:
    return await _create_account(db_session, "student2@example.com", UserRole.STUDENT)


@pytest.fixture
async def blocked_student(db_session: AsyncSession) -> Accounts:
    return await _create_account(
        db_session, "blocked@example.com", UserRole.STUDENT, status=AccountStatus.BLOCKED
    )


@pytest.fixture
async def teacher(db_session: AsyncSession) -> Accounts:
    return await _create_account(db_session, "teacher@example.com", UserRole.TEACHER)


@pytest.fixture
async def admin(db_session: AsyncSession) -> Accounts:
    return await _create_account(db_session, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
async def enforcement(db_session: AsyncSession) -> None:
    """Turn device enforcement on with a one-device limit."""
    store = SettingsStore(db_session)
    await store.set(SettingKey.DEVICE_TRACKING_ENABLED, "true")
    await store.set(SettingKey.MAX_DEVICES_PER_STUDENT, "1")


@pytest.fixture
def set_device_limit(db_session: AsyncSession) -> Callable[[int], Awaitable[None]]:
    async def _set(limit: int) -> None:
        await SettingsStore(db_session).set(SettingKey.MAX_DEVICES_PER_STUDENT, str(limit))

    return _set


@pytest.fixture
def login(client: AsyncClient) -> Callable[..., Awaitable[httpx.Response]]:
    """
    Log in through the API from a given user agent.

    Usage:
        response = await login(student.email, user_agent=PHONE_UA)
    """

    async def _login(
        email: str, password: str = TEST_PASSWORD, user_agent: str = LAPTOP_UA
    ) -> httpx.Response:
        return await client.post(
            "/api/v1/auth/login",
            json={"email": email, "password": password},
            headers={"User-Agent": user_agent},
        )

    return _login


def auth_headers(tokens: dict, device_id: str | None = None) -> dict[str, str]:
    """Bearer + fingerprint headers for a login response body."""
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    fingerprint = device_id if device_id is not None else tokens.get("device_id")
    if fingerprint:
        headers[DEVICE_ID_HEADER] = fingerprint
    return headers
