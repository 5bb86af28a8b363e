# tests/services/test_lot_ledger.py
from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.lot_ledger import LotLedger
from app.services.prep_task_errors import NotFound
from tests.factories import lot_qty, seed_basic

pytestmark = pytest.mark.asyncio


async def test_lock_and_read_returns_snapshot(session: AsyncSession):
    ids = await seed_basic(session, lot_qty=7)

    async with session.begin():
        snap = await LotLedger(session).lock_and_read(ids["lot_id"])

    assert snap.lot_id == ids["lot_id"]
    assert snap.product_id == ids["product_id"]
    assert snap.quantity_on_hand == Decimal("7")
    assert snap.expiry_at.tzinfo is not None


async def test_lock_and_read_missing_lot_raises_not_found(session: AsyncSession):
    with pytest.raises(NotFound):
        async with session.begin():
            await LotLedger(session).lock_and_read(999999)


async def test_decrement_and_increment_apply_delta(session: AsyncSession):
    ids = await seed_basic(session, lot_qty=10)
    ledger = LotLedger(session)

    async with session.begin():
        await ledger.lock_and_read(ids["lot_id"])
        left = await ledger.decrement(ids["lot_id"], Decimal("3.5"))
        assert left == Decimal("6.5")
        back = await ledger.increment(ids["lot_id"], Decimal("1.5"))
        assert back == Decimal("8")

    assert await lot_qty(session, ids["lot_id"]) == Decimal("8")


async def test_lock_many_locks_each_lot_once_in_id_order(session: AsyncSession):
    ids = await seed_basic(session)
    lot_id = ids["lot_id"]

    async with session.begin():
        snaps = await LotLedger(session).lock_many([lot_id, lot_id])

    assert list(snaps) == [lot_id]


async def test_rollback_discards_decrement(session: AsyncSession):
    ids = await seed_basic(session, lot_qty=5)

    with pytest.raises(RuntimeError):
        async with session.begin():
            await LotLedger(session).decrement(ids["lot_id"], Decimal("5"))
            raise RuntimeError("boom")

    assert await lot_qty(session, ids["lot_id"]) == Decimal("5")
