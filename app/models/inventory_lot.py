# app/models/inventory_lot.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

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
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.utils.time import utc_now

if TYPE_CHECKING:
    from .department import Department
    from .product import Product


class InventoryLot(Base):
    """
    库存批次（可预占的最小单位）

    - quantity_on_hand 只能经由 LotLedger 的 decrement / increment 修改（持行锁）
    - expiry_at <= now 的批次不可预占
    - 被备货明细引用的批次禁止删除（prep_items.lot_id ON DELETE RESTRICT）
    """

    __tablename__ = "inventory_lots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    department_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False
    )
    lot_no: Mapped[str] = mapped_column(String(64), nullable=False)
    expiry_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    quantity_on_hand: Mapped[Decimal] = mapped_column(
        Numeric(18, 3), nullable=False, default=Decimal("0"), server_default=text("0")
    )
    conversion_rate: Mapped[Decimal] = mapped_column(
        Numeric(18, 3), nullable=False, default=Decimal("1"), server_default=text("1")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )

    product: Mapped["Product"] = relationship("Product", lazy="selectin")
    department: Mapped["Department"] = relationship("Department", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity_on_hand >= 0", name="ck_inventory_lots_qty_nonneg"),
        CheckConstraint("conversion_rate > 0", name="ck_inventory_lots_conv_pos"),
        UniqueConstraint("product_id", "department_id", "lot_no", name="uq_inventory_lots_prod_dept_lot"),
        Index("ix_inventory_lots_product", "product_id"),
        Index("ix_inventory_lots_expiry", "expiry_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryLot id={self.id} lot={self.lot_no} "
            f"product={self.product_id} qty={self.quantity_on_hand}>"
        )
