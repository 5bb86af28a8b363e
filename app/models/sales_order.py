# app/models/sales_order.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.utils.time import utc_now


class SalesOrder(Base):
    """
    销售订单头（订单生命周期归订单协作方管理；这里只做只读引用）
    """

    __tablename__ = "sales_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_no: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="confirmed", server_default=text("'confirmed'")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )

    __table_args__ = (UniqueConstraint("order_no", name="uq_sales_orders_order_no"),)

    def __repr__(self) -> str:
        return f"<SalesOrder id={self.id} no={self.order_no} status={self.status}>"


class SalesOrderItem(Base):
    """
    订单行：remain = 尚未被备货任务占用的数量（只经由 OrderLineGateway 增减）
    """

    __tablename__ = "sales_order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 3), nullable=False)
    remain: Mapped[Decimal] = mapped_column(Numeric(18, 3), nullable=False)

    __table_args__ = (
        CheckConstraint("remain >= 0", name="ck_sales_order_items_remain_nonneg"),
        Index("ix_sales_order_items_order", "order_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<SalesOrderItem id={self.id} order={self.order_id} "
            f"qty={self.quantity} remain={self.remain}>"
        )
