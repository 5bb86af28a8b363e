# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

# ============================================================
# ★★ 关键：在 import app.main 之前确定数据库 DSN ★★
#   - 显式 WMS_TEST_DATABASE_URL（例如 PG）优先
#   - 否则落到临时目录下的 SQLite 文件（并发用例需要多连接共享同一个库）
# ============================================================
_TMP_DIR = Path(tempfile.mkdtemp(prefix="wms-prep-tests-"))

DATABASE_URL = os.getenv("WMS_TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}"
os.environ["WMS_DATABASE_URL"] = DATABASE_URL
os.environ.setdefault("WMS_LOT_ALERT_ENABLED", "0")

from app.db.base import Base, init_models  # noqa: E402
from app.db.engine import create_async_engine_safe  # noqa: E402
from app.db.session import get_session, normalize_async_dsn  # noqa: E402
from app.main import app  # noqa: E402

DATABASE_URL = normalize_async_dsn(DATABASE_URL)

init_models()


# =========================================
# 每用例独立 Engine（NullPool，避免跨 loop）
#   建表 → 用例 → 删表，不依赖 Alembic
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine_safe(DATABASE_URL, sqlite_timeout=10.0, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    标准 Session：用例结束时若仍有未结束的事务则回滚
    （SQLite 下打开的事务持有写锁，不能留给下一个 engine）
    """
    async with async_session_maker() as sess:
        try:
            yield sess
        finally:
            if sess.in_transaction():
                await sess.rollback()


# =========================================
# HTTP 客户端：路由层的 get_session 指向测试库
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client(async_session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def _override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as sess:
            yield sess

    app.dependency_overrides[get_session] = _override_get_session
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_session, None)
