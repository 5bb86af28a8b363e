# tests/unit/test_db_urls.py
from __future__ import annotations

import pytest

from app.db.engine import _connect_args_for, is_sqlite_url
from app.db.session import normalize_async_dsn


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("sqlite:///./wms.db", "sqlite+aiosqlite:///./wms.db"),
        ("postgres://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
        ("postgresql://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
        ("postgresql+asyncpg://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
        ('"postgresql+psycopg://u:p@h/db"', "postgresql+psycopg://u:p@h/db"),
    ],
)
def test_normalize_async_dsn(raw, expected):
    assert normalize_async_dsn(raw) == expected


def test_connect_args_per_backend():
    assert is_sqlite_url("sqlite+aiosqlite:///x.db")
    assert _connect_args_for("sqlite+aiosqlite:///x.db", sqlite_timeout=5.0) == {
        "check_same_thread": False,
        "timeout": 5.0,
    }
    assert _connect_args_for("postgresql+psycopg://u@h/db", sqlite_timeout=5.0) == {
        "application_name": "wms-prep"
    }
