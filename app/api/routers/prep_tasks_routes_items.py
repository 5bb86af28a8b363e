# app/api/routers/prep_tasks_routes_items.py
# 打包员回填 + 任务复核
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.routers.prep_tasks_schemas import (
    PackedUpdateIn,
    PrepItemOut,
    PrepReviewOut,
    ReviewOpenIn,
    ReviewUpdateIn,
)
from app.db.session import get_session
from app.services.prep_review_service import PrepReviewService
from app.services.prep_task_service import PrepTaskService


def register(router: APIRouter) -> None:
    @router.put("/{task_id}/items/{item_id}", response_model=PrepItemOut)
    async def update_prep_item_packed(
        task_id: int,
        item_id: int,
        payload: PackedUpdateIn,
        session: AsyncSession = Depends(get_session),
    ) -> PrepItemOut:
        view = await PrepTaskService(session).update_packed_quantity(
            task_id, item_id, payload.to_patch()
        )
        return PrepItemOut.model_validate(view)

    @router.get("/{task_id}/review", response_model=PrepReviewOut)
    async def get_prep_task_review(
        task_id: int,
        session: AsyncSession = Depends(get_session),
    ) -> PrepReviewOut:
        view = await PrepReviewService(session).get_review(task_id)
        return PrepReviewOut.model_validate(view)

    @router.post("/{task_id}/review", response_model=PrepReviewOut)
    async def open_prep_task_review(
        task_id: int,
        payload: ReviewOpenIn,
        session: AsyncSession = Depends(get_session),
    ) -> PrepReviewOut:
        view = await PrepReviewService(session).open_review(task_id, payload.reviewer_id)
        return PrepReviewOut.model_validate(view)

    @router.patch("/{task_id}/review", response_model=PrepReviewOut)
    async def update_prep_task_review(
        task_id: int,
        payload: ReviewUpdateIn,
        session: AsyncSession = Depends(get_session),
    ) -> PrepReviewOut:
        view = await PrepReviewService(session).update_review(task_id, payload.to_patch())
        return PrepReviewOut.model_validate(view)
