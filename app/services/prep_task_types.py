# app/services/prep_task_types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence


class _Unset:
    """patch 字段“未提供”的哨兵（与显式 None = 清空 区分）"""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


# ---------------------------------------------------------------------------
# 入参
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PrepItemInput:
    order_item_id: int
    lot_id: int
    quantity: Decimal
    note: Optional[str] = None
    pre_evidence: Optional[str] = None


@dataclass(frozen=True)
class PrepTaskCreate:
    order_id: int
    items: Sequence[PrepItemInput]
    supervisor_id: Optional[int] = None
    packer_id: Optional[int] = None
    deadline: Optional[datetime] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class PrepTaskPatch:
    """
    任务更新：字段全部可选，UNSET = 不修改，显式 None = 清空。
    旧明细总是先整体归还并删除；items 提供时再按新列表重新预占。
    """

    supervisor_id: Optional[int] | _Unset = UNSET
    packer_id: Optional[int] | _Unset = UNSET
    status: str | _Unset = UNSET
    deadline: Optional[datetime] | _Unset = UNSET
    note: Optional[str] | _Unset = UNSET
    started_at: Optional[datetime] | _Unset = UNSET
    completed_at: Optional[datetime] | _Unset = UNSET
    items: Sequence[PrepItemInput] | _Unset = UNSET


@dataclass(frozen=True)
class PackedUpdate:
    packed_qty: Decimal | _Unset = UNSET
    pre_evidence: Optional[str] | _Unset = UNSET
    post_evidence: Optional[str] | _Unset = UNSET

    def is_empty(self) -> bool:
        return (
            self.packed_qty is UNSET
            and self.pre_evidence is UNSET
            and self.post_evidence is UNSET
        )


@dataclass(frozen=True)
class ReviewPatch:
    result: str | _Unset = UNSET
    reason: Optional[str] | _Unset = UNSET

    def is_empty(self) -> bool:
        return self.result is UNSET and self.reason is UNSET


@dataclass(frozen=True)
class TaskFilter:
    q: Optional[str] = None
    status: Optional[str] = None
    supervisor_id: Optional[int] = None
    packer_id: Optional[int] = None
    limit: int = 50
    offset: int = 0


# ---------------------------------------------------------------------------
# 视图（纯结构，路由层直接 model_validate）
# ---------------------------------------------------------------------------


@dataclass
class PrepItemView:
    id: int
    task_id: int
    order_item_id: int
    lot_id: int
    lot_no: str
    product_id: int
    product_name: Optional[str]
    sku_code: Optional[str]
    requested_qty: Decimal
    packed_qty: Decimal
    pre_evidence: Optional[str]
    post_evidence: Optional[str]
    note: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass
class PrepReviewView:
    id: int
    task_id: int
    reviewer_id: Optional[int]
    result: str
    reason: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass
class PrepTaskView:
    id: int
    order_id: int
    order_no: Optional[str]
    supervisor_id: Optional[int]
    packer_id: Optional[int]
    status: str
    deadline: Optional[datetime]
    note: Optional[str]
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    items: List[PrepItemView] = field(default_factory=list)
    review: Optional[PrepReviewView] = None
    item_count: int = 0


@dataclass
class PrepTaskListRow:
    id: int
    order_id: int
    order_no: Optional[str]
    supervisor_id: Optional[int]
    packer_id: Optional[int]
    status: str
    deadline: Optional[datetime]
    note: Optional[str]
    created_at: datetime
    item_count: int


@dataclass
class PrepTaskPage:
    rows: List[PrepTaskListRow]
    total: int
    limit: int
    offset: int


@dataclass
class StatusStat:
    status: str
    total: int
    overdue: int = 0
