# app/services/prep_item_update.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.prep_item import PrepItem
from app.services.prep_task_errors import ValidationError
from app.services.prep_task_loaders import load_item
from app.services.prep_task_types import UNSET, PackedUpdate
from app.services.reservation_engine import ensure_scale


def _packed_qty(value) -> Decimal:
    try:
        q = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"packed_qty must be a number, got {value!r}", field="packed_qty")
    if not q.is_finite() or q < 0:
        raise ValidationError(f"packed_qty must be >= 0, got {value!r}", field="packed_qty")
    return ensure_scale(q, value, field="packed_qty")


async def update_packed_quantity(
    session: AsyncSession,
    task_id: int,
    item_id: int,
    patch: PackedUpdate,
    *,
    now: datetime,
) -> PrepItem:
    """
    打包员回填：只改 packed_qty / 凭证，不碰批次，也不碰 requested_qty。
    """
    if patch.is_empty():
        raise ValidationError("nothing to update", task_id=task_id, item_id=item_id)
    packed_qty = UNSET
    if patch.packed_qty is not UNSET:
        if patch.packed_qty is None:
            raise ValidationError("packed_qty cannot be null", field="packed_qty")
        packed_qty = _packed_qty(patch.packed_qty)

    item = await load_item(session, task_id, item_id, for_update=True)
    if packed_qty is not UNSET:
        item.packed_qty = packed_qty
    if patch.pre_evidence is not UNSET:
        item.pre_evidence = patch.pre_evidence
    if patch.post_evidence is not UNSET:
        item.post_evidence = patch.post_evidence
    item.updated_at = now
    await session.flush()
    return item
