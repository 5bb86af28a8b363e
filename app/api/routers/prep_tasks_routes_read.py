# app/api/routers/prep_tasks_routes_read.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.routers.prep_tasks_schemas import (
    PackedTotalOut,
    PaginationOut,
    PrepItemOut,
    PrepTaskListOut,
    PrepTaskListRowOut,
    PrepTaskOut,
    StatusStatOut,
)
from app.db.session import get_session
from app.services.prep_task_service import PrepTaskService
from app.services.prep_task_types import TaskFilter


def register(router: APIRouter) -> None:
    @router.get("", response_model=PrepTaskListOut)
    async def list_prep_tasks(
        q: Optional[str] = Query(None, description="模糊匹配备注 / 订单号"),
        status: Optional[str] = None,
        supervisor_id: Optional[int] = None,
        packer_id: Optional[int] = None,
        limit: int = Query(50, ge=1, description="每页条数，上限 200"),
        offset: int = Query(0, ge=0),
        session: AsyncSession = Depends(get_session),
    ) -> PrepTaskListOut:
        page = await PrepTaskService(session).list_tasks(
            TaskFilter(
                q=q,
                status=status,
                supervisor_id=supervisor_id,
                packer_id=packer_id,
                limit=limit,
                offset=offset,
            )
        )
        return PrepTaskListOut(
            data=[PrepTaskListRowOut.model_validate(r) for r in page.rows],
            pagination=PaginationOut(total=page.total, limit=page.limit, offset=page.offset),
        )

    @router.get("/stats/overview", response_model=List[StatusStatOut])
    async def prep_task_stats(
        session: AsyncSession = Depends(get_session),
    ) -> List[StatusStatOut]:
        stats = await PrepTaskService(session).task_stats()
        return [StatusStatOut.model_validate(s) for s in stats]

    @router.get("/stats/by-user/{user_id}", response_model=List[StatusStatOut])
    async def prep_task_stats_by_user(
        user_id: int,
        session: AsyncSession = Depends(get_session),
    ) -> List[StatusStatOut]:
        stats = await PrepTaskService(session).task_stats_by_user(user_id)
        return [StatusStatOut.model_validate(s) for s in stats]

    @router.get("/order-items/{order_item_id}/packed-qty", response_model=PackedTotalOut)
    async def packed_qty_for_order_item(
        order_item_id: int,
        session: AsyncSession = Depends(get_session),
    ) -> PackedTotalOut:
        total = await PrepTaskService(session).packed_total_for_order_item(order_item_id)
        return PackedTotalOut(order_item_id=order_item_id, packed_qty=total)

    @router.get("/{task_id}", response_model=PrepTaskOut)
    async def get_prep_task(
        task_id: int = Path(..., description="备货任务 ID"),
        session: AsyncSession = Depends(get_session),
    ) -> PrepTaskOut:
        view = await PrepTaskService(session).get_task(task_id)
        return PrepTaskOut.model_validate(view)

    @router.get("/{task_id}/items", response_model=List[PrepItemOut])
    async def get_prep_task_items(
        task_id: int,
        session: AsyncSession = Depends(get_session),
    ) -> List[PrepItemOut]:
        view = await PrepTaskService(session).get_task(task_id)
        return [PrepItemOut.model_validate(it) for it in view.items]
