# tests/services/test_prep_task_concurrency.py
from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.services.prep_task_errors import InsufficientStock
from app.services.prep_task_service import PrepTaskService
from app.services.prep_task_types import PrepTaskCreate
from tests.factories import (
    lot_qty,
    make_department,
    make_lot,
    make_order,
    make_order_item,
    make_product,
    order_remain,
    seed_basic,
)
from tests.services._prep_helpers import item
from tests.utils.concurrency import run_concurrently

pytestmark = pytest.mark.asyncio


def _create_cmd(ids: dict, qty) -> PrepTaskCreate:
    return PrepTaskCreate(
        order_id=ids["order_id"],
        items=[item(ids["order_item_id"], ids["lot_id"], qty)],
    )


async def test_second_reservation_waits_for_first_and_sees_its_decrement(
    async_session_maker: async_sessionmaker[AsyncSession],
):
    """
    on_hand=10，两个事务各要 6：
      - A 持锁期间 B 必须等待
      - A 提交后 B 看到 4 → InsufficientStock
      - 最终 on_hand=4（不会出现两边都看到 10 的丢失更新）
    """
    async with async_session_maker() as s:
        ids = await seed_basic(s, lot_qty=10, line_qty=20)

    async with async_session_maker() as sa, async_session_maker() as sb:
        async with sa.begin():
            await PrepTaskService(sa).create_task(_create_cmd(ids, 6))

            b_task = asyncio.create_task(PrepTaskService(sb).create_task(_create_cmd(ids, 6)))
            await asyncio.sleep(0.3)
            assert not b_task.done()

        with pytest.raises(InsufficientStock) as ei:
            await b_task
        assert ei.value.context["available"] == Decimal("4")

    async with async_session_maker() as s:
        assert await lot_qty(s, ids["lot_id"]) == Decimal("4")
        assert await order_remain(s, ids["order_item_id"]) == Decimal("14")


async def test_concurrent_creates_never_oversell(
    async_session_maker: async_sessionmaker[AsyncSession],
):
    async with async_session_maker() as s:
        ids = await seed_basic(s, lot_qty=10, line_qty=100)

    async def _one(_i: int):
        async with async_session_maker() as sess:
            return await PrepTaskService(sess).create_task(_create_cmd(ids, 3))

    results = await run_concurrently(5, _one)

    ok = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(ok) == 3
    assert len(failed) == 2
    assert all(isinstance(e, InsufficientStock) for e in failed)

    async with async_session_maker() as s:
        assert await lot_qty(s, ids["lot_id"]) == Decimal("1")
        assert await order_remain(s, ids["order_item_id"]) == Decimal("91")


async def test_opposite_lot_order_does_not_deadlock(
    async_session_maker: async_sessionmaker[AsyncSession],
):
    async with async_session_maker() as s:
        dept = await make_department(s)
        product = await make_product(s)
        lot_a = await make_lot(s, product_id=product, department_id=dept, qty=10)
        lot_b = await make_lot(s, product_id=product, department_id=dept, qty=10)
        order = await make_order(s)
        line = await make_order_item(s, order_id=order, product_id=product, qty=100)
        await s.commit()

    orders = [(lot_a, lot_b), (lot_b, lot_a)]

    async def _one(i: int):
        first, second = orders[i]
        async with async_session_maker() as sess:
            return await PrepTaskService(sess).create_task(
                PrepTaskCreate(
                    order_id=order,
                    items=[item(line, first, 2), item(line, second, 2)],
                )
            )

    results = await asyncio.wait_for(run_concurrently(2, _one), timeout=20)

    assert not any(isinstance(r, Exception) for r in results)
    async with async_session_maker() as s:
        assert await lot_qty(s, lot_a) == Decimal("6")
        assert await lot_qty(s, lot_b) == Decimal("6")
