# app/api/routers/prep_tasks_routes_write.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.routers.prep_tasks_schemas import (
    PrepTaskCreateIn,
    PrepTaskOut,
    PrepTaskStatusIn,
    PrepTaskUpdateIn,
)
from app.db.session import get_session
from app.services.prep_task_service import PrepTaskService


def register(router: APIRouter) -> None:
    @router.post("", response_model=PrepTaskOut, status_code=status.HTTP_201_CREATED)
    async def create_prep_task(
        payload: PrepTaskCreateIn,
        session: AsyncSession = Depends(get_session),
    ) -> PrepTaskOut:
        view = await PrepTaskService(session).create_task(payload.to_command())
        return PrepTaskOut.model_validate(view)

    @router.put("/{task_id}", response_model=PrepTaskOut)
    async def update_prep_task(
        task_id: int,
        payload: PrepTaskUpdateIn,
        session: AsyncSession = Depends(get_session),
    ) -> PrepTaskOut:
        view = await PrepTaskService(session).update_task(task_id, payload.to_patch())
        return PrepTaskOut.model_validate(view)

    @router.patch("/{task_id}/status", response_model=PrepTaskOut)
    async def change_prep_task_status(
        task_id: int,
        payload: PrepTaskStatusIn,
        session: AsyncSession = Depends(get_session),
    ) -> PrepTaskOut:
        view = await PrepTaskService(session).change_status(task_id, payload.status)
        return PrepTaskOut.model_validate(view)

    @router.post("/{task_id}/cancel", response_model=PrepTaskOut)
    async def cancel_prep_task(
        task_id: int,
        session: AsyncSession = Depends(get_session),
    ) -> PrepTaskOut:
        view = await PrepTaskService(session).cancel_task(task_id)
        return PrepTaskOut.model_validate(view)

    @router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_prep_task(
        task_id: int,
        session: AsyncSession = Depends(get_session),
    ) -> Response:
        await PrepTaskService(session).delete_task(task_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
