# app/services/prep_task_update.py
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.prep_task import PrepTask
from app.services.lot_ledger import LotLedger
from app.services.order_lines import OrderLineGateway
from app.services.prep_task_create import normalize_items, reserve_items
from app.services.prep_task_loaders import load_task
from app.services.prep_task_restore import repay_items
from app.services.prep_task_status import apply_status, ensure_editable, parse_status
from app.services.prep_task_types import UNSET, PrepTaskPatch
from app.utils.time import as_utc

log = logging.getLogger("wmsprep.prep_task")


def _apply_scalars(task: PrepTask, patch: PrepTaskPatch) -> None:
    # 出现即覆盖（含显式 None = 清空）
    if patch.supervisor_id is not UNSET:
        task.supervisor_id = patch.supervisor_id
    if patch.packer_id is not UNSET:
        task.packer_id = patch.packer_id
    if patch.deadline is not UNSET:
        task.deadline = as_utc(patch.deadline)
    if patch.note is not UNSET:
        task.note = patch.note
    if patch.started_at is not UNSET:
        task.started_at = as_utc(patch.started_at)
    if patch.completed_at is not UNSET:
        task.completed_at = as_utc(patch.completed_at)


async def update_task(
    session: AsyncSession,
    task_id: int,
    patch: PrepTaskPatch,
    *,
    now: datetime,
) -> PrepTask:
    """
    更新任务（须在事务内调用），restore-then-reapply：

    1) 锁任务行；终态任务拒绝修改
    2) 订单行（新旧并集）升序加锁，批次（新旧并集）升序加锁
    3) 归还全部旧明细（批次 + 订单行 remain），删除旧明细
    4) 覆盖出现的标量字段；status 按状态机流转
    5) patch.items 提供时，新明细按创建同一路径校验并扣减；
       未提供时任务更新后不再持有明细
    """
    task = await load_task(session, task_id, for_update=True)
    ensure_editable(task)

    target_status = parse_status(patch.status) if patch.status is not UNSET else None
    new_items = normalize_items(patch.items) if patch.items is not UNSET else []
    old_items = list(task.items)

    await OrderLineGateway(session).lock_lines(
        [it.order_item_id for it in old_items] + [it.order_item_id for it in new_items]
    )
    await LotLedger(session).lock_many(
        [it.lot_id for it in old_items] + [it.lot_id for it in new_items]
    )

    await repay_items(session, old_items, reason="update")
    task.items.clear()
    await session.flush()

    _apply_scalars(task, patch)
    if target_status is not None:
        apply_status(task, target_status, now=now)

    await reserve_items(session, task, new_items, now=now)
    log.info(
        "prep task %s items replaced: %d -> %d",
        task.id,
        len(old_items),
        len(new_items),
    )

    task.updated_at = now
    await session.flush()
    return await load_task(session, task.id)
