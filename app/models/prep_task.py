# app/models/prep_task.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.sales_order import SalesOrder
from app.utils.time import utc_now

if TYPE_CHECKING:
    from .prep_item import PrepItem
    from .prep_review import PrepReview


def _PrepItem() -> "PrepItem":
    from .prep_item import PrepItem

    return PrepItem


def _PrepReview() -> "PrepReview":
    from .prep_review import PrepReview

    return PrepReview


class PrepTask(Base):
    """
    备货任务：一个订单的一次备货作业。

    - items 为组合关系：明细的 requested_qty 已从批次扣减，属于“欠账”，
      删除明细或取消任务时必须归还
    - cancelled 后明细保留作历史
    """

    __tablename__ = "prep_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sales_orders.id", ondelete="RESTRICT"), nullable=False
    )
    supervisor_id: Mapped[Optional[int]] = mapped_column(Integer)
    packer_id: Mapped[Optional[int]] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="pending", server_default=text("'pending'")
    )
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
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
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    order: Mapped[SalesOrder] = relationship(SalesOrder, lazy="selectin")

    items: Mapped[List["PrepItem"]] = relationship(
        _PrepItem,
        back_populates="task",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by=lambda: _PrepItem().id,
    )

    review: Mapped[Optional["PrepReview"]] = relationship(
        _PrepReview,
        back_populates="task",
        lazy="selectin",
        uselist=False,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','in_progress','completed','cancelled')",
            name="ck_prep_tasks_status",
        ),
        Index("ix_prep_tasks_order", "order_id"),
        Index("ix_prep_tasks_status", "status"),
        Index("ix_prep_tasks_supervisor", "supervisor_id"),
        Index("ix_prep_tasks_packer", "packer_id"),
    )

    def __repr__(self) -> str:
        return f"<PrepTask id={self.id} order={self.order_id} status={self.status}>"
