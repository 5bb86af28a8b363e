# app/models/enums.py
from __future__ import annotations

from enum import Enum


class PrepTaskStatus(str, Enum):
    """
    备货任务状态机：

        pending ──► in_progress ──► completed
           │             │
           └─────────────┴──────► cancelled

    completed / cancelled 为终态。
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (PrepTaskStatus.COMPLETED, PrepTaskStatus.CANCELLED)


# 允许的正向流转（cancelled 单独走 cancel 流程）
FORWARD_TRANSITIONS: dict[PrepTaskStatus, PrepTaskStatus] = {
    PrepTaskStatus.PENDING: PrepTaskStatus.IN_PROGRESS,
    PrepTaskStatus.IN_PROGRESS: PrepTaskStatus.COMPLETED,
}


class ReviewResult(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
