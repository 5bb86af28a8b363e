# app/models/prep_review.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.utils.time import utc_now

if TYPE_CHECKING:
    from .prep_task import PrepTask


def _PrepTask() -> "PrepTask":
    from .prep_task import PrepTask

    return PrepTask


class PrepReview(Base):
    """任务复核（与任务 1:1）"""

    __tablename__ = "prep_reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("prep_tasks.id", ondelete="CASCADE"), nullable=False
    )
    reviewer_id: Mapped[Optional[int]] = mapped_column(Integer)
    result: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending", server_default=text("'pending'")
    )
    reason: Mapped[Optional[str]] = mapped_column(Text)
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

    task: Mapped["PrepTask"] = relationship(_PrepTask, back_populates="review")

    __table_args__ = (
        UniqueConstraint("task_id", name="uq_prep_reviews_task"),
        CheckConstraint(
            "result IN ('pending','confirmed','rejected')",
            name="ck_prep_reviews_result",
        ),
    )

    def __repr__(self) -> str:
        return f"<PrepReview id={self.id} task={self.task_id} result={self.result}>"
