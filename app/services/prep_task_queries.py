# app/services/prep_task_queries.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import PrepTaskStatus
from app.models.prep_item import PrepItem
from app.models.prep_task import PrepTask
from app.models.sales_order import SalesOrder
from app.services.prep_task_errors import NotFound
from app.services.prep_task_status import parse_status
from app.services.prep_task_types import PrepTaskListRow, PrepTaskPage, StatusStat, TaskFilter
from app.utils.time import as_utc


def _filter_conditions(f: TaskFilter) -> list:
    conds = []
    if f.status:
        conds.append(PrepTask.status == parse_status(f.status).value)
    if f.supervisor_id is not None:
        conds.append(PrepTask.supervisor_id == f.supervisor_id)
    if f.packer_id is not None:
        conds.append(PrepTask.packer_id == f.packer_id)
    if f.q:
        like = f"%{f.q.strip()}%"
        conds.append(or_(PrepTask.note.ilike(like), SalesOrder.order_no.ilike(like)))
    return conds


async def list_tasks(session: AsyncSession, f: TaskFilter) -> PrepTaskPage:
    """
    任务列表：q 匹配备注 / 订单号；按 created_at 倒序；返回 rows + total。
    limit 的上限由调用方（服务 / 路由）裁剪。
    """
    conds = _filter_conditions(f)

    item_count = (
        select(func.count(PrepItem.id))
        .where(PrepItem.task_id == PrepTask.id)
        .correlate(PrepTask)
        .scalar_subquery()
    )

    base = select(PrepTask.id).join(SalesOrder, SalesOrder.id == PrepTask.order_id)
    if conds:
        base = base.where(and_(*conds))
    total = int((await session.execute(select(func.count()).select_from(base.subquery()))).scalar_one())

    stmt = (
        select(
            PrepTask.id,
            PrepTask.order_id,
            SalesOrder.order_no,
            PrepTask.supervisor_id,
            PrepTask.packer_id,
            PrepTask.status,
            PrepTask.deadline,
            PrepTask.note,
            PrepTask.created_at,
            item_count.label("item_count"),
        )
        .join(SalesOrder, SalesOrder.id == PrepTask.order_id)
        .order_by(PrepTask.created_at.desc(), PrepTask.id.desc())
        .limit(f.limit)
        .offset(f.offset)
    )
    if conds:
        stmt = stmt.where(and_(*conds))

    rows = (await session.execute(stmt)).all()
    return PrepTaskPage(
        rows=[
            PrepTaskListRow(
                id=int(r.id),
                order_id=int(r.order_id),
                order_no=r.order_no,
                supervisor_id=r.supervisor_id,
                packer_id=r.packer_id,
                status=r.status,
                deadline=as_utc(r.deadline),
                note=r.note,
                created_at=as_utc(r.created_at),
                item_count=int(r.item_count or 0),
            )
            for r in rows
        ],
        total=total,
        limit=f.limit,
        offset=f.offset,
    )


def _empty_stats() -> Dict[str, StatusStat]:
    return {s.value: StatusStat(status=s.value, total=0, overdue=0) for s in PrepTaskStatus}


async def task_stats(session: AsyncSession, *, now: datetime) -> List[StatusStat]:
    """
    按状态统计：total + overdue（deadline < now 且未到终态）。
    """
    overdue = func.sum(
        case(
            (
                and_(
                    PrepTask.deadline.is_not(None),
                    PrepTask.deadline < now,
                    PrepTask.status.in_(
                        [PrepTaskStatus.PENDING.value, PrepTaskStatus.IN_PROGRESS.value]
                    ),
                ),
                1,
            ),
            else_=0,
        )
    )
    stmt = select(PrepTask.status, func.count(PrepTask.id), overdue).group_by(PrepTask.status)

    out = _empty_stats()
    for status, total, od in (await session.execute(stmt)).all():
        out[status] = StatusStat(status=status, total=int(total or 0), overdue=int(od or 0))
    return list(out.values())


async def task_stats_by_user(session: AsyncSession, user_id: int) -> List[StatusStat]:
    """某用户（主管或打包员）名下的任务按状态计数。"""
    stmt = (
        select(PrepTask.status, func.count(PrepTask.id))
        .where(or_(PrepTask.supervisor_id == user_id, PrepTask.packer_id == user_id))
        .group_by(PrepTask.status)
    )
    out = _empty_stats()
    for status, total in (await session.execute(stmt)).all():
        out[status] = StatusStat(status=status, total=int(total or 0))
    return list(out.values())


async def packed_total_for_order_item(session: AsyncSession, order_item_id: int) -> Decimal:
    """某订单行在所有备货明细上的 packed_qty 合计；没有明细 → NotFound。"""
    stmt = select(func.count(PrepItem.id), func.coalesce(func.sum(PrepItem.packed_qty), 0)).where(
        PrepItem.order_item_id == order_item_id
    )
    count, total = (await session.execute(stmt)).one()
    if not count:
        raise NotFound(
            f"no prep items for order item {order_item_id}",
            order_item_id=order_item_id,
        )
    return Decimal(str(total))
