# app/models/prep_item.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.inventory_lot import InventoryLot
from app.utils.time import utc_now

if TYPE_CHECKING:
    from .prep_task import PrepTask


def _PrepTask() -> "PrepTask":
    from .prep_task import PrepTask

    return PrepTask


class PrepItem(Base):
    """
    备货明细：

    - requested_qty (pre)  : 预占量，创建时已从 lot 扣减
    - packed_qty    (post) : 打包员实际装箱量，只影响展示/统计，不动库存
    - pre_evidence / post_evidence : 凭证（图片 URL 等）
    """

    __tablename__ = "prep_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("prep_tasks.id", ondelete="CASCADE"), nullable=False
    )
    order_item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sales_order_items.id", ondelete="RESTRICT"), nullable=False
    )
    lot_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inventory_lots.id", ondelete="RESTRICT"), nullable=False
    )
    requested_qty: Mapped[Decimal] = mapped_column(Numeric(18, 3), nullable=False)
    packed_qty: Mapped[Decimal] = mapped_column(
        Numeric(18, 3), nullable=False, default=Decimal("0"), server_default=text("0")
    )
    pre_evidence: Mapped[Optional[str]] = mapped_column(Text)
    post_evidence: Mapped[Optional[str]] = mapped_column(Text)
    note: Mapped[Optional[str]] = mapped_column(Text)

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

    task: Mapped["PrepTask"] = relationship(_PrepTask, back_populates="items")
    lot: Mapped[InventoryLot] = relationship(InventoryLot, lazy="selectin")

    __table_args__ = (
        CheckConstraint("requested_qty > 0", name="ck_prep_items_requested_pos"),
        CheckConstraint("packed_qty >= 0", name="ck_prep_items_packed_nonneg"),
        Index("ix_prep_items_task", "task_id"),
        Index("ix_prep_items_order_item", "order_item_id"),
        Index("ix_prep_items_lot", "lot_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PrepItem id={self.id} task={self.task_id} lot={self.lot_id} "
            f"pre={self.requested_qty} post={self.packed_qty}>"
        )
