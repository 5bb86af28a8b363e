# app/services/prep_task_views.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from app.models.prep_item import PrepItem
from app.models.prep_review import PrepReview
from app.models.prep_task import PrepTask
from app.services.prep_task_types import PrepItemView, PrepReviewView, PrepTaskView
from app.utils.time import as_utc


def item_view(item: PrepItem) -> PrepItemView:
    lot = item.lot
    product = lot.product if lot is not None else None
    return PrepItemView(
        id=item.id,
        task_id=item.task_id,
        order_item_id=item.order_item_id,
        lot_id=item.lot_id,
        lot_no=lot.lot_no if lot is not None else "",
        product_id=lot.product_id if lot is not None else 0,
        product_name=product.name if product is not None else None,
        sku_code=product.sku_code if product is not None else None,
        requested_qty=Decimal(item.requested_qty),
        packed_qty=Decimal(item.packed_qty or 0),
        pre_evidence=item.pre_evidence,
        post_evidence=item.post_evidence,
        note=item.note,
        created_at=as_utc(item.created_at),
        updated_at=as_utc(item.updated_at),
    )


def review_view(review: Optional[PrepReview]) -> Optional[PrepReviewView]:
    if review is None:
        return None
    return PrepReviewView(
        id=review.id,
        task_id=review.task_id,
        reviewer_id=review.reviewer_id,
        result=review.result,
        reason=review.reason,
        created_at=as_utc(review.created_at),
        updated_at=as_utc(review.updated_at),
    )


def task_view(task: PrepTask) -> PrepTaskView:
    items = sorted(task.items or [], key=lambda it: it.id)
    return PrepTaskView(
        id=task.id,
        order_id=task.order_id,
        order_no=task.order.order_no if task.order is not None else None,
        supervisor_id=task.supervisor_id,
        packer_id=task.packer_id,
        status=task.status,
        deadline=as_utc(task.deadline),
        note=task.note,
        created_at=as_utc(task.created_at),
        updated_at=as_utc(task.updated_at),
        started_at=as_utc(task.started_at),
        completed_at=as_utc(task.completed_at),
        items=[item_view(it) for it in items],
        review=review_view(task.review),
        item_count=len(items),
    )
