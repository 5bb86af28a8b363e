# app/services/prep_review_service.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.tx import run_in_tx
from app.models.enums import PrepTaskStatus, ReviewResult
from app.models.prep_review import PrepReview
from app.services.prep_task_errors import InvalidState, NotFound, ValidationError
from app.services.prep_task_loaders import load_task
from app.services.prep_task_types import UNSET, PrepReviewView, ReviewPatch
from app.services.prep_task_views import review_view
from app.utils.time import utc_now

log = logging.getLogger("wmsprep.review")


def _parse_result(value) -> str:
    try:
        return ReviewResult(str(value)).value
    except ValueError:
        allowed = ", ".join(r.value for r in ReviewResult)
        raise ValidationError(f"invalid review result {value!r}, expected one of: {allowed}", result=value)


class PrepReviewService:
    """
    任务复核：
    - open_review   : 任务完成后开一条 pending 复核（幂等）
    - get_review    : 读取
    - update_review : 改 result / reason（result 只允许 pending|confirmed|rejected）
    """

    def __init__(self, session: AsyncSession, *, clock: Callable[[], datetime] = utc_now) -> None:
        self.session = session
        self.clock = clock

    async def _load(self, task_id: int, *, for_update: bool = False) -> Optional[PrepReview]:
        stmt = (
            select(PrepReview)
            .where(PrepReview.task_id == task_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return (await self.session.execute(stmt)).scalars().first()

    async def get_review(self, task_id: int) -> PrepReviewView:
        async def _run() -> PrepReviewView:
            review = await self._load(task_id)
            if review is None:
                raise NotFound(f"review not found for task {task_id}", task_id=task_id)
            return review_view(review)

        return await run_in_tx(self.session, _run, savepoint=False)

    async def open_review(self, task_id: int, reviewer_id: Optional[int] = None) -> PrepReviewView:
        async def _run() -> PrepReviewView:
            task = await load_task(self.session, task_id, for_update=True)
            if task.status != PrepTaskStatus.COMPLETED.value:
                raise InvalidState(
                    f"PrepTask {task_id} must be completed before review (status={task.status})",
                    task_id=task_id,
                    status=task.status,
                )
            review = await self._load(task_id)
            if review is None:
                review = PrepReview(
                    task_id=task_id,
                    reviewer_id=reviewer_id,
                    result=ReviewResult.PENDING.value,
                )
                self.session.add(review)
                await self.session.flush()
                log.info("review opened: task=%s reviewer=%s", task_id, reviewer_id)
            return review_view(review)

        return await run_in_tx(self.session, _run)

    async def update_review(self, task_id: int, patch: ReviewPatch) -> PrepReviewView:
        if patch.is_empty():
            raise ValidationError("nothing to update", task_id=task_id)
        result = _parse_result(patch.result) if patch.result is not UNSET else None

        async def _run() -> PrepReviewView:
            review = await self._load(task_id, for_update=True)
            if review is None:
                raise NotFound(f"review not found for task {task_id}", task_id=task_id)
            if result is not None:
                review.result = result
            if patch.reason is not UNSET:
                review.reason = patch.reason
            review.updated_at = self.clock()
            await self.session.flush()
            return review_view(review)

        return await run_in_tx(self.session, _run)
