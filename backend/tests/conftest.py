"""Shared fixtures: an in-memory SQLite schema per test and small data builders."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
import pytest_asyncio
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.database import Base
from app.models import Asset, AssetVisibility, MemoryType, User
from app.repositories.memory import MemoryRepository


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def access_token_for(user_id, token_type: str = "access", expires_in: timedelta = timedelta(minutes=15)) -> str:
    payload = {"sub": str(user_id), "exp": datetime.now(timezone.utc) + expires_in, "type": token_type}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

    # Match PostgreSQL's ON DELETE CASCADE behaviour on the join table.
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def repository(db) -> MemoryRepository:
    return MemoryRepository(db)


@pytest.fixture
def make_user(db):
    async def _make(email: str) -> User:
        user = User(email=email)
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def owner(make_user) -> User:
    return await make_user("owner@example.com")


@pytest.fixture
def make_asset(db):
    async def _make(
        user: User,
        file_created_at: datetime,
        visibility: AssetVisibility = AssetVisibility.TIMELINE,
        deleted_at: datetime | None = None,
    ) -> Asset:
        asset = Asset(
            owner_id=user.id,
            file_created_at=file_created_at,
            visibility=visibility,
            deleted_at=deleted_at,
        )
        db.add(asset)
        await db.commit()
        return asset

    return _make


@pytest.fixture
def make_memory(repository):
    async def _make(user: User, asset_ids=(), **values):
        values.setdefault("type", MemoryType.ON_THIS_DAY)
        values.setdefault("data", {"year": 2020})
        values.setdefault("memory_at", utc(2020, 10, 18))
        return await repository.create({"owner_id": user.id, **values}, set(asset_ids))

    return _make
