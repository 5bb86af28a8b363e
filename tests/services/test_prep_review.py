# tests/services/test_prep_review.py
from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.prep_review_service import PrepReviewService
from app.services.prep_task_errors import InvalidState, NotFound, ValidationError
from app.services.prep_task_service import PrepTaskService
from app.services.prep_task_types import ReviewPatch
from tests.factories import seed_basic
from tests.services._prep_helpers import create_simple_task

pytestmark = pytest.mark.asyncio


async def _completed_task_id(session: AsyncSession) -> int:
    ids = await seed_basic(session)
    task = await create_simple_task(session, ids, qty=1)
    svc = PrepTaskService(session)
    await svc.change_status(task.id, "in_progress")
    await svc.change_status(task.id, "completed")
    return task.id


async def test_open_review_requires_completed_task(session: AsyncSession):
    ids = await seed_basic(session)
    task = await create_simple_task(session, ids, qty=1)

    with pytest.raises(InvalidState):
        await PrepReviewService(session).open_review(task.id, reviewer_id=9)


async def test_open_review_is_idempotent(session: AsyncSession):
    task_id = await _completed_task_id(session)
    svc = PrepReviewService(session)

    first = await svc.open_review(task_id, reviewer_id=9)
    second = await svc.open_review(task_id, reviewer_id=10)

    assert first.id == second.id
    assert first.result == "pending"
    assert second.reviewer_id == 9


async def test_update_review_result_and_reason(session: AsyncSession):
    task_id = await _completed_task_id(session)
    svc = PrepReviewService(session)
    await svc.open_review(task_id, reviewer_id=9)

    view = await svc.update_review(task_id, ReviewPatch(result="rejected", reason="wrong lot"))

    assert view.result == "rejected"
    assert view.reason == "wrong lot"
    assert (await svc.get_review(task_id)).result == "rejected"

    task = await PrepTaskService(session).get_task(task_id)
    assert task.review is not None
    assert task.review.result == "rejected"


async def test_update_review_rejects_unknown_result(session: AsyncSession):
    task_id = await _completed_task_id(session)
    svc = PrepReviewService(session)
    await svc.open_review(task_id)

    with pytest.raises(ValidationError):
        await svc.update_review(task_id, ReviewPatch(result="maybe"))
    with pytest.raises(ValidationError):
        await svc.update_review(task_id, ReviewPatch())


async def test_missing_review_not_found(session: AsyncSession):
    task_id = await _completed_task_id(session)

    with pytest.raises(NotFound):
        await PrepReviewService(session).get_review(task_id)
    with pytest.raises(NotFound):
        await PrepReviewService(session).update_review(task_id, ReviewPatch(reason="x"))
