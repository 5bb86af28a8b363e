# app/core/tx.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


@asynccontextmanager
async def tx_scope(session: AsyncSession, *, savepoint: bool = True):
    """
    单一事务边界：
    - session 尚无事务：begin/commit，异常 rollback
    - session 已在事务中（调用方持有外层事务）：
        savepoint=True  用保存点包裹，失败只回滚到保存点，外层事务由调用方决定 commit
        savepoint=False 直接在外层事务里执行（只读查询用）
    """
    if session.in_transaction():
        if savepoint:
            async with session.begin_nested():
                yield
        else:
            yield
    else:
        async with session.begin():
            yield


async def run_in_tx(
    session: AsyncSession,
    fn: Callable[[], Awaitable[T]],
    *,
    savepoint: bool = True,
) -> T:
    async with tx_scope(session, savepoint=savepoint):
        return await fn()
