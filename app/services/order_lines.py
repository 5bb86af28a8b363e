# app/services/order_lines.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.sales_order import SalesOrder, SalesOrderItem
from app.services.prep_task_errors import NotFound, OutstandingExceeded


@dataclass(frozen=True)
class OrderHead:
    order_id: int
    order_no: str
    status: str


@dataclass(frozen=True)
class OrderLineSnapshot:
    order_item_id: int
    order_id: int
    product_id: int
    quantity: Decimal
    remain: Decimal


class OrderLineGateway:
    """
    订单协作方的窄接口：备货链路只通过这里读写订单行的剩余未备数量（remain）。

    加锁顺序与批次一致：按 order_item_id 升序。
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_order(self, order_id: int) -> OrderHead:
        row = (
            await self.session.execute(
                select(SalesOrder.id, SalesOrder.order_no, SalesOrder.status).where(
                    SalesOrder.id == order_id
                )
            )
        ).first()
        if row is None:
            raise NotFound(f"sales order not found: id={order_id}", order_id=order_id)
        return OrderHead(order_id=int(row.id), order_no=str(row.order_no), status=str(row.status))

    async def get_line(self, order_item_id: int, *, for_update: bool = False) -> OrderLineSnapshot:
        stmt = select(
            SalesOrderItem.id,
            SalesOrderItem.order_id,
            SalesOrderItem.product_id,
            SalesOrderItem.quantity,
            SalesOrderItem.remain,
        ).where(SalesOrderItem.id == order_item_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self.session.execute(stmt)).first()
        if row is None:
            raise NotFound(
                f"sales order item not found: id={order_item_id}",
                order_item_id=order_item_id,
            )
        return OrderLineSnapshot(
            order_item_id=int(row.id),
            order_id=int(row.order_id),
            product_id=int(row.product_id),
            quantity=Decimal(row.quantity),
            remain=Decimal(row.remain),
        )

    async def lock_lines(self, order_item_ids: Iterable[int]) -> Dict[int, OrderLineSnapshot]:
        out: Dict[int, OrderLineSnapshot] = {}
        for oid in sorted({int(x) for x in order_item_ids}):
            out[oid] = await self.get_line(oid, for_update=True)
        return out

    async def get_outstanding_quantity(self, order_item_id: int) -> Decimal:
        return (await self.get_line(order_item_id)).remain

    async def increase_outstanding_quantity(self, order_item_id: int, amount: Decimal) -> Decimal:
        return await self._apply(order_item_id, Decimal(amount))

    async def decrease_outstanding_quantity(self, order_item_id: int, amount: Decimal) -> Decimal:
        """
        扣减剩余未备数量；超出时抛 OutstandingExceeded。
        调用方须已持有该订单行的行锁（lock_lines）。
        """
        amount = Decimal(amount)
        remain = await self.get_outstanding_quantity(order_item_id)
        if remain < amount:
            raise OutstandingExceeded(
                f"order item {order_item_id}: requested={amount} exceeds outstanding={remain}",
                order_item_id=order_item_id,
                requested=amount,
                outstanding=remain,
            )
        return await self._apply(order_item_id, -amount)

    async def _apply(self, order_item_id: int, delta: Decimal) -> Decimal:
        stmt = (
            update(SalesOrderItem)
            .where(SalesOrderItem.id == order_item_id)
            .values(remain=SalesOrderItem.remain + delta)
            .returning(SalesOrderItem.remain)
            .execution_options(synchronize_session="fetch")
        )
        new_remain = (await self.session.execute(stmt)).scalar_one_or_none()
        if new_remain is None:
            raise NotFound(
                f"sales order item not found: id={order_item_id}",
                order_item_id=order_item_id,
            )
        return Decimal(new_remain)
