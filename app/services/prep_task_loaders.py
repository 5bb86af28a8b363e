# app/services/prep_task_loaders.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.inventory_lot import InventoryLot
from app.models.prep_item import PrepItem
from app.models.prep_task import PrepTask
from app.services.prep_task_errors import NotFound


async def load_task(
    session: AsyncSession,
    task_id: int,
    *,
    for_update: bool = False,
) -> PrepTask:
    """
    加载任务 + 明细（+ 批次/商品 + 复核）。
    for_update=True 时锁任务行；populate_existing 保证拿到的是库里的最新值。
    """
    stmt = (
        select(PrepTask)
        .options(
            selectinload(PrepTask.items).selectinload(PrepItem.lot).selectinload(InventoryLot.product),
            selectinload(PrepTask.review),
            selectinload(PrepTask.order),
        )
        .where(PrepTask.id == task_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update(of=PrepTask)

    task = (await session.execute(stmt)).scalars().first()
    if task is None:
        raise NotFound(f"PrepTask not found: id={task_id}", task_id=task_id)
    return task


async def load_item(
    session: AsyncSession,
    task_id: int,
    item_id: int,
    *,
    for_update: bool = False,
) -> PrepItem:
    stmt = (
        select(PrepItem)
        .where(PrepItem.id == item_id, PrepItem.task_id == task_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update(of=PrepItem)
    item = (await session.execute(stmt)).scalars().first()
    if item is None:
        raise NotFound(
            f"PrepItem not found: task_id={task_id}, item_id={item_id}",
            task_id=task_id,
            item_id=item_id,
        )
    return item
