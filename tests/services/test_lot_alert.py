# tests/services/test_lot_alert.py
from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import List

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.jobs.lot_alert import run_once
from app.services.lot_alert_service import LotAlert, LotAlertService
from app.utils.time import utc_now
from tests.factories import make_department, make_lot, make_product

pytestmark = pytest.mark.asyncio


class _CollectSink:
    def __init__(self) -> None:
        self.sent: List[LotAlert] = []

    async def send(self, alerts: List[LotAlert]) -> None:
        self.sent.extend(alerts)


async def _seed(session: AsyncSession) -> dict:
    now = utc_now()
    dept = await make_department(session, code="D-COLD")
    watched = await make_product(session, name="Milk", low_stock_threshold=5, near_expiry_days=7)
    quiet = await make_product(session, name="Rice")

    low = await make_lot(session, product_id=watched, department_id=dept, qty=3)
    near = await make_lot(
        session, product_id=watched, department_id=dept, qty=50, expiry_at=now + timedelta(days=2)
    )
    await make_lot(
        session, product_id=watched, department_id=dept, qty=50, expiry_at=now + timedelta(days=30)
    )
    await make_lot(
        session, product_id=watched, department_id=dept, qty=50, expiry_at=now - timedelta(days=1)
    )
    await make_lot(session, product_id=quiet, department_id=dept, qty=0)
    await session.commit()
    return {"low": low, "near": near, "now": now}


async def test_low_stock_and_near_expiry_detected(session: AsyncSession):
    seeded = await _seed(session)
    svc = LotAlertService(session)

    low = await svc.low_stock_lots()
    assert [a.lot_id for a in low] == [seeded["low"]]
    assert low[0].threshold == Decimal("5")
    assert low[0].department_code == "D-COLD"
    assert "low stock" in low[0].message

    near = await svc.expiring_lots(seeded["now"])
    assert [a.lot_id for a in near] == [seeded["near"]]
    assert near[0].days_left in (1, 2)
    assert "near expiry" in near[0].message


async def test_scan_and_notify_sends_everything_to_sink(session: AsyncSession):
    seeded = await _seed(session)
    sink = _CollectSink()

    alerts = await LotAlertService(session).scan_and_notify(sink, now=seeded["now"])

    assert {a.kind for a in alerts} == {"low_stock", "near_expiry"}
    assert sink.sent == alerts


async def test_run_once_uses_its_own_session(session: AsyncSession, async_session_maker):
    await _seed(session)
    sink = _CollectSink()

    alerts = await run_once(async_session_maker, sink)

    assert len(alerts) == 2
    assert len(sink.sent) == 2
