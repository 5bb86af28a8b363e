# app/api/routers/prep_tasks_schemas.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.prep_task_types import (
    UNSET,
    PackedUpdate,
    PrepItemInput,
    PrepTaskCreate,
    PrepTaskPatch,
    ReviewPatch,
)


# ---------------------------------------------------------------------------
# 入参
# ---------------------------------------------------------------------------


class PrepItemIn(BaseModel):
    order_item_id: int = Field(..., description="订单行 ID（必须属于任务所在订单）")
    lot_id: int = Field(..., description="预占的批次 ID（选批由调用方负责）")
    quantity: Decimal = Field(
        ..., gt=0, decimal_places=3, description="预占数量（>0，最多 3 位小数）"
    )
    note: Optional[str] = None
    pre_evidence: Optional[str] = Field(None, description="备货前凭证（图片 URL 等）")

    def to_input(self) -> PrepItemInput:
        return PrepItemInput(
            order_item_id=self.order_item_id,
            lot_id=self.lot_id,
            quantity=self.quantity,
            note=self.note,
            pre_evidence=self.pre_evidence,
        )


class PrepTaskCreateIn(BaseModel):
    order_id: int
    supervisor_id: Optional[int] = None
    packer_id: Optional[int] = None
    deadline: Optional[datetime] = None
    note: Optional[str] = None
    items: List[PrepItemIn] = Field(..., min_length=1)

    def to_command(self) -> PrepTaskCreate:
        return PrepTaskCreate(
            order_id=self.order_id,
            supervisor_id=self.supervisor_id,
            packer_id=self.packer_id,
            deadline=self.deadline,
            note=self.note,
            items=[it.to_input() for it in self.items],
        )


class PrepTaskUpdateIn(BaseModel):
    """
    字段全部可选；未出现的标量字段不修改。
    旧明细总是整体归还；items 给出时按新列表重新预占，缺省 / null / [] 均为不再持有明细。
    """

    supervisor_id: Optional[int] = None
    packer_id: Optional[int] = None
    status: Optional[str] = None
    deadline: Optional[datetime] = None
    note: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    items: Optional[List[PrepItemIn]] = None

    def to_patch(self) -> PrepTaskPatch:
        given = self.model_fields_set
        return PrepTaskPatch(
            supervisor_id=self.supervisor_id if "supervisor_id" in given else UNSET,
            packer_id=self.packer_id if "packer_id" in given else UNSET,
            status=self.status if "status" in given else UNSET,
            deadline=self.deadline if "deadline" in given else UNSET,
            note=self.note if "note" in given else UNSET,
            started_at=self.started_at if "started_at" in given else UNSET,
            completed_at=self.completed_at if "completed_at" in given else UNSET,
            # null 与缺省同义
            items=[it.to_input() for it in self.items] if self.items is not None else UNSET,
        )


class PrepTaskStatusIn(BaseModel):
    status: str = Field(..., description="pending | in_progress | completed | cancelled")


class PackedUpdateIn(BaseModel):
    packed_qty: Optional[Decimal] = Field(
        None, ge=0, decimal_places=3, description="实际装箱数量（>=0，最多 3 位小数）"
    )
    pre_evidence: Optional[str] = None
    post_evidence: Optional[str] = None

    def to_patch(self) -> PackedUpdate:
        given = self.model_fields_set
        return PackedUpdate(
            packed_qty=self.packed_qty if "packed_qty" in given else UNSET,
            pre_evidence=self.pre_evidence if "pre_evidence" in given else UNSET,
            post_evidence=self.post_evidence if "post_evidence" in given else UNSET,
        )


class ReviewUpdateIn(BaseModel):
    result: Optional[str] = Field(None, description="pending | confirmed | rejected")
    reason: Optional[str] = None

    def to_patch(self) -> ReviewPatch:
        given = self.model_fields_set
        return ReviewPatch(
            result=self.result if "result" in given else UNSET,
            reason=self.reason if "reason" in given else UNSET,
        )


class ReviewOpenIn(BaseModel):
    reviewer_id: Optional[int] = None


# ---------------------------------------------------------------------------
# 出参
# ---------------------------------------------------------------------------


class PrepItemOut(BaseModel):
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

    model_config = ConfigDict(from_attributes=True)


class PrepReviewOut(BaseModel):
    id: int
    task_id: int
    reviewer_id: Optional[int]
    result: str
    reason: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PrepTaskOut(BaseModel):
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
    items: List[PrepItemOut] = []
    review: Optional[PrepReviewOut] = None
    item_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class PrepTaskListRowOut(BaseModel):
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

    model_config = ConfigDict(from_attributes=True)


class PaginationOut(BaseModel):
    total: int
    limit: int
    offset: int


class PrepTaskListOut(BaseModel):
    data: List[PrepTaskListRowOut]
    pagination: PaginationOut


class StatusStatOut(BaseModel):
    status: str
    total: int
    overdue: int = 0

    model_config = ConfigDict(from_attributes=True)


class PackedTotalOut(BaseModel):
    order_item_id: int
    packed_qty: Decimal
