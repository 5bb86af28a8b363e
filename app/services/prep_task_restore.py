# app/services/prep_task_restore.py
from __future__ import annotations

from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.prep_item import PrepItem
from app.services.lot_ledger import LotLedger
from app.services.order_lines import OrderLineGateway
from app.services.reservation_engine import ReservationEngine, ReservationRequest


async def repay_items(
    session: AsyncSession,
    items: Sequence[PrepItem],
    *,
    reason: str,
) -> None:
    """
    归还明细欠账：批次 += requested_qty，订单行 remain += requested_qty。
    加锁顺序：订单行升序 → 批次升序（与 reserve_items 一致）。
    """
    if not items:
        return

    orders = OrderLineGateway(session)
    await orders.lock_lines(it.order_item_id for it in items)

    engine = ReservationEngine(LotLedger(session))
    await engine.release(
        [ReservationRequest(lot_id=it.lot_id, quantity=it.requested_qty) for it in items],
        reason=reason,
    )

    for it in items:
        await orders.increase_outstanding_quantity(it.order_item_id, it.requested_qty)
