# tests/services/test_reservation_engine.py
from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.lot_ledger import LotLedger
from app.services.prep_task_errors import ExpiredLot, InsufficientStock, ValidationError
from app.services.reservation_engine import ReservationEngine, ReservationRequest, to_quantity
from app.utils.time import utc_now
from tests.factories import lot_qty, make_lot, seed_basic

pytestmark = pytest.mark.asyncio


def _req(lot_id: int, qty) -> ReservationRequest:
    return ReservationRequest(lot_id=lot_id, quantity=Decimal(str(qty)))


async def test_reserve_decrements_on_hand(session: AsyncSession):
    ids = await seed_basic(session, lot_qty=10)
    engine = ReservationEngine(LotLedger(session))

    async with session.begin():
        results = await engine.reserve([_req(ids["lot_id"], 4)])

    assert results[0].remaining == Decimal("6")
    assert await lot_qty(session, ids["lot_id"]) == Decimal("6")


async def test_reserve_exact_on_hand_leaves_zero(session: AsyncSession):
    ids = await seed_basic(session, lot_qty=5)

    async with session.begin():
        await ReservationEngine(LotLedger(session)).reserve([_req(ids["lot_id"], 5)])

    assert await lot_qty(session, ids["lot_id"]) == Decimal("0")


async def test_reserve_insufficient_raises_with_context(session: AsyncSession):
    ids = await seed_basic(session, lot_qty=3)

    with pytest.raises(InsufficientStock) as ei:
        async with session.begin():
            await ReservationEngine(LotLedger(session)).reserve([_req(ids["lot_id"], 4)])

    assert ei.value.context["lot_id"] == ids["lot_id"]
    assert ei.value.context["requested"] == Decimal("4")
    assert ei.value.context["available"] == Decimal("3")
    assert await lot_qty(session, ids["lot_id"]) == Decimal("3")


async def test_reserve_expired_lot_rejected(session: AsyncSession):
    ids = await seed_basic(session, lot_qty=10, expiry_at=utc_now() - timedelta(hours=1))

    with pytest.raises(ExpiredLot):
        async with session.begin():
            await ReservationEngine(LotLedger(session)).reserve([_req(ids["lot_id"], 1)])

    assert await lot_qty(session, ids["lot_id"]) == Decimal("10")


async def test_lot_expiring_exactly_now_is_expired(session: AsyncSession):
    now = utc_now().replace(microsecond=0)
    ids = await seed_basic(session, lot_qty=10, expiry_at=now)

    with pytest.raises(ExpiredLot):
        async with session.begin():
            await ReservationEngine(LotLedger(session)).reserve([_req(ids["lot_id"], 1)], now=now)


async def test_same_lot_requests_see_previous_decrement(session: AsyncSession):
    ids = await seed_basic(session, lot_qty=5)

    with pytest.raises(InsufficientStock) as ei:
        async with session.begin():
            await ReservationEngine(LotLedger(session)).reserve(
                [_req(ids["lot_id"], 3), _req(ids["lot_id"], 3)]
            )

    # 第二条看到的是第一条扣减之后的 2
    assert ei.value.context["available"] == Decimal("2")
    assert await lot_qty(session, ids["lot_id"]) == Decimal("5")


async def test_failure_on_later_lot_rolls_back_earlier_decrements(session: AsyncSession):
    ids = await seed_basic(session, lot_qty=10)
    other = await make_lot(
        session, product_id=ids["product_id"], department_id=ids["department_id"], qty=1
    )
    await session.commit()

    with pytest.raises(InsufficientStock):
        async with session.begin():
            await ReservationEngine(LotLedger(session)).reserve(
                [_req(ids["lot_id"], 4), _req(other, 2)]
            )

    assert await lot_qty(session, ids["lot_id"]) == Decimal("10")
    assert await lot_qty(session, other) == Decimal("1")


async def test_release_adds_back(session: AsyncSession):
    ids = await seed_basic(session, lot_qty=2)

    async with session.begin():
        await ReservationEngine(LotLedger(session)).release(
            [_req(ids["lot_id"], 3)], reason="cancel"
        )

    assert await lot_qty(session, ids["lot_id"]) == Decimal("5")


@pytest.mark.parametrize("bad", [0, -1, "abc", None])
async def test_to_quantity_rejects_non_positive(bad):
    with pytest.raises(ValidationError):
        to_quantity(bad)


async def test_normalize_requires_lot_id():
    class _R:
        lot_id = None
        quantity = 1

    with pytest.raises(ValidationError):
        ReservationEngine.normalize([_R()])


@pytest.mark.parametrize("bad", ["0.0006", "1.2345", "1E-4"])
async def test_to_quantity_rejects_more_than_three_decimals(bad):
    with pytest.raises(ValidationError):
        to_quantity(bad)


@pytest.mark.parametrize("raw, expected", [("1.250", "1.25"), ("2.5000", "2.5"), (3, "3")])
async def test_to_quantity_accepts_column_scale(raw, expected):
    assert to_quantity(raw) == Decimal(expected)


async def test_reserve_locks_each_lot_once(session: AsyncSession, monkeypatch):
    ids = await seed_basic(session, lot_qty=10)
    other = await make_lot(
        session, product_id=ids["product_id"], department_id=ids["department_id"], qty=4
    )
    await session.commit()

    locked = []
    orig = LotLedger.lock_and_read

    async def _spy(self, lot_id):
        locked.append(lot_id)
        return await orig(self, lot_id)

    monkeypatch.setattr(LotLedger, "lock_and_read", _spy)

    async with session.begin():
        results = await ReservationEngine(LotLedger(session)).reserve(
            [_req(other, 1), _req(ids["lot_id"], 2), _req(ids["lot_id"], 3)]
        )

    assert sorted(locked) == locked == sorted({ids["lot_id"], other})
    assert [r.remaining for r in results] == [Decimal("3"), Decimal("8"), Decimal("5")]
    assert await lot_qty(session, ids["lot_id"]) == Decimal("5")
