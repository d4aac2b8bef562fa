"""Shared fixtures: an in-memory SQLite database per test and an ASGI client bound to it."""

import os

# Settings are read once and cached, so the environment must be set before any app import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENABLE_RATE_LIMITER"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["LLM_API_KEY"] = ""
os.environ["SMTP_HOST"] = ""

from contextlib import contextmanager
from typing import Dict, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from apps.auth.schemas import UserRegister
from apps.auth.service import register_user
from main import app
from models.base import Base, enable_sqlite_foreign_keys, get_db

PASSWORD = "Password123"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(eng.sync_engine)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def make_user(db: AsyncSession, email: str, full_name: str = None) -> Tuple[str, str]:
    """Register a user through onboarding; returns (user_id, default workspace id)."""
    payload = UserRegister(email=email, password=PASSWORD, confirm_password=PASSWORD, full_name=full_name)
    profile, workspace = await register_user(db, payload)
    return profile.user_id, workspace.id


async def api_user(client: AsyncClient, email: str, full_name: str = "Test User") -> Tuple[Dict[str, str], str]:
    """Register and log in over HTTP; returns (auth headers, default workspace id)."""
    res = await client.post(
        "/api/auth/register",
        json={"email": email, "password": PASSWORD, "confirm_password": PASSWORD, "full_name": full_name},
    )
    assert res.status_code == 201, res.text
    workspace_id = res.json()["workspaceId"]
    res = await client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['token']}"}, workspace_id


@contextmanager
def failing_insert(model):
    """Make every INSERT of ``model`` raise, to exercise rollback paths."""

    def _boom(mapper, connection, target):
        raise RuntimeError(f"forced {model.__tablename__} insert failure")

    event.listen(model, "before_insert", _boom)
    try:
        yield
    finally:
        event.remove(model, "before_insert", _boom)
