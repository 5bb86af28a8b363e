# app/db/engine.py
# 统一引擎工厂：PG 走行锁（FOR UPDATE）；SQLite 用 BEGIN IMMEDIATE 把写事务串行化
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

__all__ = ["create_async_engine_safe", "is_sqlite_url"]


def is_sqlite_url(url_str: str) -> bool:
    return make_url(url_str).get_backend_name().startswith("sqlite")


def _connect_args_for(url_str: str, *, sqlite_timeout: float) -> dict[str, Any]:
    """
    返回后端专属 connect_args：
    - PostgreSQL(psycopg): application_name
    - SQLite: check_same_thread + 写锁等待超时
    """
    backend = make_url(url_str).get_backend_name()

    if backend.startswith("postgresql"):
        return {"application_name": "wms-prep"}

    if backend.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": sqlite_timeout}

    return {}


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """
    SQLite 没有行锁：
    - 关闭 pysqlite 自带的隐式事务，由 SQLAlchemy 的 begin 事件显式发 BEGIN IMMEDIATE
    - BEGIN IMMEDIATE 在事务开始时就拿数据库写锁，并发写事务排队而不是互相覆盖
    - 打开外键约束（ON DELETE RESTRICT / CASCADE 依赖它）
    """
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):
        dbapi_connection.isolation_level = None
        cur = dbapi_connection.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    @event.listens_for(sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_async_engine_safe(
    url_str: str,
    *,
    echo: bool = False,
    sqlite_timeout: float = 30.0,
    **extra: Any,
) -> AsyncEngine:
    """Async 版（用于 'postgresql+psycopg' 或 'sqlite+aiosqlite'）。"""
    connect_args = _connect_args_for(url_str, sqlite_timeout=sqlite_timeout)

    kwargs: dict[str, Any] = {"echo": echo}
    if make_url(url_str).get_backend_name().startswith("postgresql"):
        kwargs["pool_pre_ping"] = True
    if connect_args:
        kwargs["connect_args"] = connect_args
    kwargs.update(extra)

    engine = create_async_engine(url_str, **kwargs)
    if is_sqlite_url(url_str):
        _install_sqlite_hooks(engine)
    return engine
