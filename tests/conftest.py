"""Shared test fixtures."""

from __future__ import annotations

import os

os.environ["SNAP_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SNAP_JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["SNAP_LOG_FORMAT"] = "console"

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from snapshare.auth.jwt import create_access_token
from snapshare.auth.password import hash_password
from snapshare.config import get_settings
from snapshare.database import close_db, create_schema, get_session, init_db
from snapshare.db.models import Account, Comment, Post
from snapshare.email.service import reset_email_service
from snapshare.main import create_app
from snapshare.redis_client import get_optional_redis

get_settings.cache_clear()

TEST_PASSWORD = "secret123"

# Hashed once for every fixture account
_TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the services use."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def incr(self, key: str) -> int:
        value = int(self.store.get(key, "0")) + 1
        self.store[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return key in self.store

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


@pytest_asyncio.fixture(autouse=True)
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory database per test."""
    settings = get_settings()
    await init_db(settings.database_url)
    await create_schema()
    reset_email_service()
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for service calls and assertions."""
    async for session in get_session():
        yield session
        break


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def client(fake_redis: FakeRedis) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, with Redis-backed features on the fake."""
    app = create_app()
    app.dependency_overrides[get_optional_redis] = lambda: fake_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_email_service(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Mock the email service to prevent actual email sending."""
    mock_service = MagicMock()
    mock_service.send_template = AsyncMock(return_value=True)
    mock_service.send_email = AsyncMock(return_value=True)

    monkeypatch.setattr("snapshare.auth.router.get_email_service", lambda *a, **kw: mock_service)
    return mock_service


@pytest.fixture
def sent_code(mock_email_service: MagicMock) -> Callable[[], str]:
    """Returns the one-time code passed to the most recent send_template call."""

    def _code() -> str:
        return mock_email_service.send_template.call_args.kwargs["context"]["code"]

    return _code


@pytest.fixture
def make_account(db_session: AsyncSession) -> Callable[..., Awaitable[Account]]:
    """Factory for activated accounts (bypasses registration)."""

    async def _make(username: str = "alice", email: str | None = None, **overrides: Any) -> Account:
        now = datetime.now(timezone.utc)
        fields: dict[str, Any] = {
            "username": username,
            "email": email or f"{username.lower()}@example.com",
            "password_hash": _TEST_PASSWORD_HASH,
            "is_active": True,
            "activated_at": now,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        account = Account(**fields)
        db_session.add(account)
        await db_session.commit()
        return account

    return _make


@pytest.fixture
def make_post(db_session: AsyncSession) -> Callable[..., Awaitable[Post]]:
    async def _make(author: Account, **overrides: Any) -> Post:
        now = datetime.now(timezone.utc)
        post = Post(author_id=author.id, caption="sunset", created_at=now, updated_at=now, **overrides)
        db_session.add(post)
        await db_session.commit()
        return post

    return _make


@pytest.fixture
def make_comment(db_session: AsyncSession) -> Callable[..., Awaitable[Comment]]:
    async def _make(post: Post, author: Account, **overrides: Any) -> Comment:
        now = datetime.now(timezone.utc)
        comment = Comment(post_id=post.id, author_id=author.id, created_at=now, updated_at=now, **overrides)
        db_session.add(comment)
        await db_session.commit()
        return comment

    return _make


@pytest.fixture
def auth_headers() -> Callable[[Account], dict[str, str]]:
    def _headers(account: Account) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(account.id, account.email)}"}

    return _headers
