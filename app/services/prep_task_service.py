# app/services/prep_task_service.py
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.tx import run_in_tx
from app.models.enums import PrepTaskStatus
from app.obs.metrics import prep_task_ops_total
from app.services.prep_item_update import update_packed_quantity as _update_packed_quantity
from app.services.prep_task_cancel import cancel_task as _cancel_task
from app.services.prep_task_cancel import delete_task as _delete_task
from app.services.prep_task_create import create_task as _create_task
from app.services.prep_task_errors import PrepTaskError
from app.services.prep_task_loaders import load_task as _load_task
from app.services.prep_task_queries import list_tasks as _list_tasks
from app.services.prep_task_queries import packed_total_for_order_item as _packed_total
from app.services.prep_task_queries import task_stats as _task_stats
from app.services.prep_task_queries import task_stats_by_user as _task_stats_by_user
from app.services.prep_task_status import apply_status, parse_status
from app.services.prep_task_types import (
    PackedUpdate,
    PrepItemView,
    PrepTaskCreate,
    PrepTaskPage,
    PrepTaskPatch,
    PrepTaskView,
    StatusStat,
    TaskFilter,
)
from app.services.prep_task_update import update_task as _update_task
from app.services.prep_task_views import item_view, task_view
from app.utils.time import utc_now

log = logging.getLogger("wmsprep.prep_task")

T = TypeVar("T")


class PrepTaskService:
    """
    备货任务编排门面：

    - 每个写操作独占一个事务边界（session 已在事务中时用保存点），
      任一错误整体回滚，不留半截预占
    - 返回纯结构视图（PrepTaskView / PrepItemView ...），不把 ORM 对象泄露给调用方
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.session = session
        self.clock = clock

    async def _write(self, op: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            result = await run_in_tx(self.session, fn)
        except PrepTaskError as e:
            prep_task_ops_total.labels(op, "error").inc()
            log.info("prep task %s rejected: %s %s", op, e.code, e.context)
            raise
        prep_task_ops_total.labels(op, "ok").inc()
        return result

    async def _read(self, fn: Callable[[], Awaitable[T]]) -> T:
        return await run_in_tx(self.session, fn, savepoint=False)

    # ------------------------------------------------------------------
    # 写
    # ------------------------------------------------------------------

    async def create_task(self, data: PrepTaskCreate) -> PrepTaskView:
        async def _run() -> PrepTaskView:
            task = await _create_task(self.session, data, now=self.clock())
            return task_view(task)

        return await self._write("create", _run)

    async def update_task(self, task_id: int, patch: PrepTaskPatch) -> PrepTaskView:
        async def _run() -> PrepTaskView:
            task = await _update_task(self.session, task_id, patch, now=self.clock())
            return task_view(task)

        return await self._write("update", _run)

    async def cancel_task(self, task_id: int) -> PrepTaskView:
        async def _run() -> PrepTaskView:
            task = await _cancel_task(self.session, task_id, now=self.clock())
            return task_view(task)

        return await self._write("cancel", _run)

    async def change_status(self, task_id: int, status: str) -> PrepTaskView:
        """
        状态接口：cancelled 走取消流程（归还预占）；其余按状态机正向流转。
        """
        target = parse_status(status)
        if target is PrepTaskStatus.CANCELLED:
            return await self.cancel_task(task_id)

        async def _run() -> PrepTaskView:
            now = self.clock()
            task = await _load_task(self.session, task_id, for_update=True)
            if apply_status(task, target, now=now):
                task.updated_at = now
                await self.session.flush()
            return task_view(task)

        return await self._write("status", _run)

    async def delete_task(self, task_id: int) -> None:
        async def _run() -> None:
            await _delete_task(self.session, task_id)

        await self._write("delete", _run)

    async def update_packed_quantity(
        self,
        task_id: int,
        item_id: int,
        patch: PackedUpdate,
    ) -> PrepItemView:
        async def _run() -> PrepItemView:
            item = await _update_packed_quantity(
                self.session, task_id, item_id, patch, now=self.clock()
            )
            return item_view(item)

        return await self._write("item", _run)

    # ------------------------------------------------------------------
    # 读
    # ------------------------------------------------------------------

    async def get_task(self, task_id: int) -> PrepTaskView:
        async def _run() -> PrepTaskView:
            return task_view(await _load_task(self.session, task_id))

        return await self._read(_run)

    async def list_tasks(self, f: Optional[TaskFilter] = None) -> PrepTaskPage:
        f = f or TaskFilter()
        settings = get_settings()
        limit = max(1, min(int(f.limit or settings.LIST_LIMIT_DEFAULT), settings.LIST_LIMIT_MAX))
        f = TaskFilter(
            q=f.q,
            status=f.status,
            supervisor_id=f.supervisor_id,
            packer_id=f.packer_id,
            limit=limit,
            offset=max(0, int(f.offset or 0)),
        )
        return await self._read(lambda: _list_tasks(self.session, f))

    async def task_stats(self) -> List[StatusStat]:
        now = self.clock()
        return await self._read(lambda: _task_stats(self.session, now=now))

    async def task_stats_by_user(self, user_id: int) -> List[StatusStat]:
        return await self._read(lambda: _task_stats_by_user(self.session, user_id))

    async def packed_total_for_order_item(self, order_item_id: int) -> Decimal:
        return await self._read(lambda: _packed_total(self.session, order_item_id))
