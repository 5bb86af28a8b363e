# app/services/prep_task_cancel.py
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import PrepTaskStatus
from app.models.prep_task import PrepTask
from app.services.prep_task_errors import InvalidState
from app.services.prep_task_loaders import load_task
from app.services.prep_task_restore import repay_items
from app.services.prep_task_status import ensure_editable

log = logging.getLogger("wmsprep.prep_task")


async def cancel_task(session: AsyncSession, task_id: int, *, now: datetime) -> PrepTask:
    """
    取消任务（须在事务内调用），是创建的完整逆操作：
    - 已取消 → AlreadyCancelled；已完成 → InvalidState
    - 每条明细：批次 += requested_qty，订单行 remain += requested_qty
    - 明细保留作历史
    """
    task = await load_task(session, task_id, for_update=True)
    ensure_editable(task)

    items = list(task.items)
    await repay_items(session, items, reason="cancel")

    task.status = PrepTaskStatus.CANCELLED.value
    task.updated_at = now
    await session.flush()

    log.info("prep task cancelled: id=%s restored_items=%d", task.id, len(items))
    return await load_task(session, task.id)


async def delete_task(session: AsyncSession, task_id: int) -> None:
    """
    删除任务（含明细 / 复核）。只允许删已取消（预占已归还）的任务。
    """
    task = await load_task(session, task_id, for_update=True)
    if task.status != PrepTaskStatus.CANCELLED.value:
        raise InvalidState(
            f"PrepTask {task.id} must be cancelled before delete (status={task.status})",
            task_id=task.id,
            status=task.status,
        )
    await session.delete(task)
    await session.flush()
    log.info("prep task deleted: id=%s", task_id)
