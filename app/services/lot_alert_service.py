# app/services/lot_alert_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.tx import run_in_tx
from app.models.department import Department
from app.models.inventory_lot import InventoryLot
from app.models.product import Product
from app.obs.metrics import lot_alerts_total
from app.utils.time import as_utc, utc_now

log = logging.getLogger("wmsprep.lot_alert")


@dataclass(frozen=True)
class LotAlert:
    kind: str  # low_stock | near_expiry
    lot_id: int
    lot_no: str
    product_id: int
    product_name: str
    sku_code: str
    department_code: Optional[str]
    quantity_on_hand: Decimal
    expiry_at: datetime
    threshold: Optional[Decimal] = None
    days_left: Optional[int] = None

    @property
    def message(self) -> str:
        if self.kind == "low_stock":
            return (
                f"[low stock] {self.sku_code} {self.product_name} lot {self.lot_no}: "
                f"on hand {self.quantity_on_hand} <= threshold {self.threshold}"
            )
        return (
            f"[near expiry] {self.sku_code} {self.product_name} lot {self.lot_no}: "
            f"expires {self.expiry_at.date().isoformat()} ({self.days_left} day(s) left)"
        )


class AlertSink(Protocol):
    async def send(self, alerts: List[LotAlert]) -> None: ...


class LoggingAlertSink:
    """默认出口：只写日志（通知投递不在本服务范围内）。"""

    async def send(self, alerts: List[LotAlert]) -> None:
        for a in alerts:
            log.warning(a.message)


class LotAlertService:
    """
    批次预警（只读）：
    - 低库存：quantity_on_hand <= product.low_stock_threshold（阈值 > 0）
    - 临期  ：now < expiry_at <= now + product.near_expiry_days（天数 > 0）
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _base(self):
        return (
            select(InventoryLot, Product, Department.code)
            .join(Product, Product.id == InventoryLot.product_id)
            .join(Department, Department.id == InventoryLot.department_id)
        )

    async def low_stock_lots(self) -> List[LotAlert]:
        stmt = (
            self._base()
            .where(
                Product.low_stock_threshold > 0,
                InventoryLot.quantity_on_hand <= Product.low_stock_threshold,
            )
            .order_by(InventoryLot.quantity_on_hand.asc(), InventoryLot.id.asc())
        )
        out: List[LotAlert] = []
        for lot, product, dept_code in (await self.session.execute(stmt)).all():
            out.append(
                LotAlert(
                    kind="low_stock",
                    lot_id=lot.id,
                    lot_no=lot.lot_no,
                    product_id=product.id,
                    product_name=product.name,
                    sku_code=product.sku_code,
                    department_code=dept_code,
                    quantity_on_hand=Decimal(lot.quantity_on_hand),
                    expiry_at=as_utc(lot.expiry_at),
                    threshold=Decimal(product.low_stock_threshold),
                )
            )
        return out

    async def expiring_lots(self, now: Optional[datetime] = None) -> List[LotAlert]:
        now = now or utc_now()
        # 每个商品的临期窗口不同：先取未过期 + 开启临期预警的批次，再逐个比窗口
        stmt = (
            self._base()
            .where(Product.near_expiry_days > 0, InventoryLot.expiry_at > now)
            .order_by(InventoryLot.expiry_at.asc(), InventoryLot.id.asc())
        )
        out: List[LotAlert] = []
        for lot, product, dept_code in (await self.session.execute(stmt)).all():
            expiry = as_utc(lot.expiry_at)
            if expiry > now + timedelta(days=int(product.near_expiry_days)):
                continue
            out.append(
                LotAlert(
                    kind="near_expiry",
                    lot_id=lot.id,
                    lot_no=lot.lot_no,
                    product_id=product.id,
                    product_name=product.name,
                    sku_code=product.sku_code,
                    department_code=dept_code,
                    quantity_on_hand=Decimal(lot.quantity_on_hand),
                    expiry_at=expiry,
                    days_left=(expiry - now).days,
                )
            )
        return out

    async def scan(self, now: Optional[datetime] = None) -> List[LotAlert]:
        async def _run() -> List[LotAlert]:
            return [*await self.low_stock_lots(), *await self.expiring_lots(now)]

        return await run_in_tx(self.session, _run, savepoint=False)

    async def scan_and_notify(
        self,
        sink: Optional[AlertSink] = None,
        now: Optional[datetime] = None,
    ) -> List[LotAlert]:
        alerts = await self.scan(now)
        for a in alerts:
            lot_alerts_total.labels(a.kind).inc()
        if alerts:
            await (sink or LoggingAlertSink()).send(alerts)
        log.info("lot alert scan done: %d alert(s)", len(alerts))
        return alerts
