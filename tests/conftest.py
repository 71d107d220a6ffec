from __future__ import annotations

import asyncio
import base64
import json
from datetime import datetime, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import taskboard.models  # noqa: F401
from taskboard.core.database import Base, get_db, get_session_factory
from taskboard.core.deps import SessionContext
from taskboard.core.realtime import ChangeFeed
from taskboard.core.s3 import StorageError, get_storage
from taskboard.models.enums import UserRole
from taskboard.models.user import Profile, UserRoleAssignment
from taskboard.utils.timezone import now_utc

ADMIN_ID = "0b6f2f0e-5f0a-4d4e-9a51-5c1f4f6d7a01"
ALICE_ID = "3c1d8a52-8e0e-4b8e-bb0f-2a8c4c8f1b02"
BOB_ID = "7e4a9b13-2d6f-4c7a-9e3d-1f5b6c7d8e03"

USERS = [
    (ADMIN_ID, "admin", UserRole.ADMIN),
    (ALICE_ID, "alice", UserRole.USER),
    (BOB_ID, "bob", UserRole.USER),
]


def _b64(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).decode().rstrip("=")


def make_token(user_id: str, exp: Optional[datetime] = None) -> str:
    payload = {"sub": user_id}
    if exp is not None:
        payload["exp"] = int((exp - datetime(1970, 1, 1)).total_seconds())
    return f"{_b64({'alg': 'HS256', 'typ': 'JWT'})}.{_b64(payload)}.signature"


def auth_header(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


def session_for(user_id: str) -> SessionContext:
    for uid, username, role in USERS:
        if uid == user_id:
            return SessionContext(user_id=uid, username=username, role=role)
    raise KeyError(user_id)


class FakeStorage:
    """메모리 스토리지: 업로드/삭제/서명 기록, 지정한 내용·키에서 실패"""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_content: set[bytes] = set()
        self.fail_sign: set[str] = set()

    async def upload(self, key, fileobj, content_type):
        data = fileobj.read()
        if data in self.fail_content:
            raise StorageError("The request signature we calculated does not match")
        self.objects[key] = data
        return key

    async def delete(self, key):
        self.deleted.append(key)
        self.objects.pop(key, None)

    async def create_signed_url(self, key, expires=None):
        if key in self.fail_sign:
            raise StorageError("Object not found")
        return f"https://storage.test/task-screenshots/{key}?expires={expires}"


async def _prepare_database(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        for user_id, username, role in USERS:
            session.add(Profile(id=user_id, username=username, created_at=now_utc()))
            session.add(UserRoleAssignment(user_id=user_id, role=role.value))
        await session.commit()


def _engine_for(tmp_path):
    return create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'taskboard.db'}", poolclass=NullPool)


@pytest.fixture
async def engine(tmp_path):
    engine = _engine_for(tmp_path)
    await _prepare_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed(queue_size=10)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def tomorrow() -> datetime:
    return now_utc() + timedelta(days=1)


@pytest.fixture
def api(tmp_path):
    """TestClient + 임시 SQLite + FakeStorage"""
    from taskboard.main import app

    setup_engine = _engine_for(tmp_path)

    async def _setup():
        await _prepare_database(setup_engine)
        await setup_engine.dispose()

    asyncio.run(_setup())

    app_engine = _engine_for(tmp_path)
    factory = async_sessionmaker(app_engine, class_=AsyncSession, expire_on_commit=False)
    fake_storage = FakeStorage()

    async def _get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: factory
    app.dependency_overrides[get_storage] = lambda: fake_storage

    with TestClient(app) as client:
        client.storage = fake_storage
        yield client

    app.dependency_overrides.clear()
    asyncio.run(app_engine.dispose())
