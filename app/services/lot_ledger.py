# app/services/lot_ledger.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.inventory_lot import InventoryLot
from app.services.prep_task_errors import NotFound
from app.utils.time import as_utc, utc_now

log = logging.getLogger("wmsprep.ledger")


@dataclass(frozen=True)
class LotSnapshot:
    lot_id: int
    product_id: int
    lot_no: str
    quantity_on_hand: Decimal
    expiry_at: datetime


class LotLedger:
    """
    批次台账：批次现存量的唯一写入口。

    - 所有方法都在调用方事务内执行，不自行 commit
    - lock_and_read 持有行锁（FOR UPDATE）直到调用方事务结束
    - decrement 不做校验（由 ReservationEngine 在持锁读之后校验）
    - increment 为补偿操作，没有上限
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def lock_and_read(self, lot_id: int) -> LotSnapshot:
        stmt = (
            select(
                InventoryLot.id,
                InventoryLot.product_id,
                InventoryLot.lot_no,
                InventoryLot.quantity_on_hand,
                InventoryLot.expiry_at,
            )
            .where(InventoryLot.id == lot_id)
            .with_for_update()
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            raise NotFound(f"inventory lot not found: id={lot_id}", lot_id=lot_id)
        return LotSnapshot(
            lot_id=int(row.id),
            product_id=int(row.product_id),
            lot_no=str(row.lot_no),
            quantity_on_hand=Decimal(row.quantity_on_hand),
            expiry_at=as_utc(row.expiry_at),
        )

    async def lock_many(self, lot_ids: Iterable[int]) -> Dict[int, LotSnapshot]:
        """
        按 id 升序加锁（全局统一加锁顺序，杜绝交叉等待死锁）。
        """
        out: Dict[int, LotSnapshot] = {}
        for lot_id in sorted({int(x) for x in lot_ids}):
            out[lot_id] = await self.lock_and_read(lot_id)
        return out

    async def decrement(self, lot_id: int, amount: Decimal) -> Decimal:
        return await self._apply(lot_id, -Decimal(amount))

    async def increment(self, lot_id: int, amount: Decimal) -> Decimal:
        return await self._apply(lot_id, Decimal(amount))

    async def _apply(self, lot_id: int, delta: Decimal) -> Decimal:
        stmt = (
            update(InventoryLot)
            .where(InventoryLot.id == lot_id)
            .values(
                quantity_on_hand=InventoryLot.quantity_on_hand + delta,
                updated_at=utc_now(),
            )
            .returning(InventoryLot.quantity_on_hand)
            .execution_options(synchronize_session="fetch")
        )
        new_qty = (await self.session.execute(stmt)).scalar_one_or_none()
        if new_qty is None:
            raise NotFound(f"inventory lot not found: id={lot_id}", lot_id=lot_id)
        log.debug("lot %s qty %+s -> %s", lot_id, delta, new_qty)
        return Decimal(new_qty)
