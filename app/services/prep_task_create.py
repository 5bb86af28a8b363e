# app/services/prep_task_create.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import PrepTaskStatus
from app.models.prep_item import PrepItem
from app.models.prep_task import PrepTask
from app.services.lot_ledger import LotLedger
from app.services.order_lines import OrderLineGateway
from app.services.prep_task_errors import ValidationError
from app.services.prep_task_loaders import load_task
from app.services.prep_task_types import PrepItemInput, PrepTaskCreate
from app.services.reservation_engine import ReservationEngine, ReservationRequest, to_quantity
from app.utils.time import as_utc

log = logging.getLogger("wmsprep.prep_task")


def normalize_items(items: Sequence[PrepItemInput]) -> List[PrepItemInput]:
    out: List[PrepItemInput] = []
    for idx, it in enumerate(items):
        if it.order_item_id is None:
            raise ValidationError(f"items[{idx}].order_item_id is required", index=idx)
        if it.lot_id is None:
            raise ValidationError(f"items[{idx}].lot_id is required", index=idx)
        out.append(
            PrepItemInput(
                order_item_id=int(it.order_item_id),
                lot_id=int(it.lot_id),
                quantity=to_quantity(it.quantity, field=f"items[{idx}].quantity"),
                note=it.note,
                pre_evidence=it.pre_evidence,
            )
        )
    return out


async def reserve_items(
    session: AsyncSession,
    task: PrepTask,
    items: Sequence[PrepItemInput],
    *,
    now: datetime,
) -> None:
    """
    为任务落一批明细（创建 / 更新重放共用）：

    1) 按 id 升序锁订单行，校验订单行属于本任务的订单
    2) 逐条扣减订单行剩余未备数量（超出 → OutstandingExceeded）
    3) ReservationEngine 按 lot 升序加锁、校验过期/数量并扣减
    4) 写入 prep_items

    任何一步失败都直接抛出，由外层事务整体回滚。
    """
    if not items:
        return

    orders = OrderLineGateway(session)
    lines = await orders.lock_lines(it.order_item_id for it in items)
    for idx, it in enumerate(items):
        line = lines[it.order_item_id]
        if line.order_id != task.order_id:
            raise ValidationError(
                f"items[{idx}]: order item {it.order_item_id} belongs to order {line.order_id}, "
                f"not to task order {task.order_id}",
                index=idx,
                order_item_id=it.order_item_id,
                order_id=task.order_id,
            )

    for it in items:
        await orders.decrease_outstanding_quantity(it.order_item_id, it.quantity)

    engine = ReservationEngine(LotLedger(session))
    await engine.reserve(
        [ReservationRequest(lot_id=it.lot_id, quantity=it.quantity) for it in items],
        now=now,
    )

    for it in items:
        task.items.append(
            PrepItem(
                order_item_id=it.order_item_id,
                lot_id=it.lot_id,
                requested_qty=it.quantity,
                note=it.note,
                pre_evidence=it.pre_evidence,
            )
        )
    await session.flush()


async def create_task(
    session: AsyncSession,
    data: PrepTaskCreate,
    *,
    now: datetime,
) -> PrepTask:
    """
    创建备货任务（须在事务内调用）：
    - 至少一条明细
    - 先插任务头，再 reserve_items
    - 返回重新加载后的任务（含明细/批次/商品）
    """
    if not data.items:
        raise ValidationError("items must contain at least one entry")
    items = normalize_items(data.items)

    await OrderLineGateway(session).get_order(data.order_id)

    task = PrepTask(
        order_id=data.order_id,
        supervisor_id=data.supervisor_id,
        packer_id=data.packer_id,
        status=PrepTaskStatus.PENDING.value,
        deadline=as_utc(data.deadline),
        note=data.note,
        items=[],
    )
    session.add(task)
    await session.flush()

    await reserve_items(session, task, items, now=now)

    log.info("prep task created: id=%s order=%s items=%d", task.id, task.order_id, len(items))
    return await load_task(session, task.id)
