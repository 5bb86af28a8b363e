# tests/services/_prep_helpers.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.prep_task_service import PrepTaskService
from app.services.prep_task_types import PrepItemInput, PrepTaskCreate, PrepTaskView


def item(order_item_id: int, lot_id: int, qty) -> PrepItemInput:
    return PrepItemInput(order_item_id=order_item_id, lot_id=lot_id, quantity=Decimal(str(qty)))


async def create_simple_task(
    session: AsyncSession,
    ids: dict,
    qty=4,
    *,
    supervisor_id: Optional[int] = None,
    packer_id: Optional[int] = None,
    note: Optional[str] = None,
) -> PrepTaskView:
    return await PrepTaskService(session).create_task(
        PrepTaskCreate(
            order_id=ids["order_id"],
            supervisor_id=supervisor_id,
            packer_id=packer_id,
            note=note,
            items=[item(ids["order_item_id"], ids["lot_id"], qty)],
        )
    )
