# app/services/reservation_engine.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional, Sequence

from app.obs.metrics import lot_compensations_total, lot_reservations_total
from app.services.lot_ledger import LotLedger
from app.services.prep_task_errors import ExpiredLot, InsufficientStock, ValidationError
from app.utils.time import utc_now

log = logging.getLogger("wmsprep.reserve")


@dataclass(frozen=True)
class ReservationRequest:
    lot_id: int
    quantity: Decimal


@dataclass(frozen=True)
class ReservationResult:
    lot_id: int
    quantity: Decimal
    remaining: Decimal


# 与 Numeric(18, 3) 列同精度
QTY_SCALE = Decimal("0.001")


def ensure_scale(q: Decimal, raw, *, field: str) -> Decimal:
    try:
        exact = q == q.quantize(QTY_SCALE)
    except InvalidOperation:
        exact = False
    if not exact:
        raise ValidationError(
            f"{field} allows at most 3 decimal places, got {raw!r}",
            field=field,
        )
    return q


def to_quantity(value, *, field: str = "quantity") -> Decimal:
    """数量归一成 Decimal；非数字 / <= 0 / 超过 3 位小数视为入参错误。"""
    try:
        q = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}", field=field)
    if not q.is_finite() or q <= 0:
        raise ValidationError(f"{field} must be > 0, got {value!r}", field=field)
    return ensure_scale(q, value, field=field)


class ReservationEngine:
    """
    预占引擎（在调用方事务内执行）：

    1) 校验入参形状
    2) 先按 lot_id 升序把本批涉及的批次全部加锁
    3) 再按调用方顺序逐条：过期校验 → 数量校验 → 扣减
       同一批次多条请求依次看到前一条的扣减结果
    4) 第一条失败即抛出，由外层事务整体回滚

    不做 FEFO 选批，选哪个 lot 是调用方的事。
    """

    def __init__(
        self,
        ledger: LotLedger,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.ledger = ledger
        self.clock = clock

    @staticmethod
    def normalize(requests: Sequence) -> List[ReservationRequest]:
        out: List[ReservationRequest] = []
        for idx, r in enumerate(requests):
            lot_id = getattr(r, "lot_id", None)
            if lot_id is None:
                raise ValidationError(f"items[{idx}].lot_id is required", index=idx)
            qty = to_quantity(getattr(r, "quantity", None), field=f"items[{idx}].quantity")
            out.append(ReservationRequest(lot_id=int(lot_id), quantity=qty))
        return out

    async def reserve(
        self,
        requests: Sequence[ReservationRequest],
        *,
        now: Optional[datetime] = None,
    ) -> List[ReservationResult]:
        reqs = self.normalize(requests)
        if not reqs:
            return []

        now = now or self.clock()
        snaps = await self.ledger.lock_many(r.lot_id for r in reqs)
        # 同一批次多条请求在本地累计扣减
        available = {lot_id: s.quantity_on_hand for lot_id, s in snaps.items()}

        results: List[ReservationResult] = []
        for req in reqs:
            snap = snaps[req.lot_id]
            if snap.expiry_at <= now:
                lot_reservations_total.labels("expired").inc()
                log.info("reserve rejected: lot %s expired at %s", req.lot_id, snap.expiry_at)
                raise ExpiredLot(
                    f"lot {snap.lot_no} (id={req.lot_id}) expired at {snap.expiry_at.isoformat()}",
                    lot_id=req.lot_id,
                    expiry_at=snap.expiry_at.isoformat(),
                )
            if available[req.lot_id] < req.quantity:
                lot_reservations_total.labels("insufficient").inc()
                log.info(
                    "reserve rejected: lot %s requested=%s available=%s",
                    req.lot_id,
                    req.quantity,
                    available[req.lot_id],
                )
                raise InsufficientStock(
                    f"insufficient stock: lot {snap.lot_no} (id={req.lot_id}) "
                    f"requested={req.quantity} available={available[req.lot_id]}",
                    lot_id=req.lot_id,
                    requested=req.quantity,
                    available=available[req.lot_id],
                )
            remaining = await self.ledger.decrement(req.lot_id, req.quantity)
            available[req.lot_id] = remaining
            lot_reservations_total.labels("ok").inc()
            results.append(ReservationResult(req.lot_id, req.quantity, remaining))
        return results

    async def release(
        self,
        requests: Sequence[ReservationRequest],
        *,
        reason: str,
    ) -> None:
        """补偿：把已扣减的数量原样加回批次（同样按 lot_id 升序加锁）。"""
        if not requests:
            return
        await self.ledger.lock_many(r.lot_id for r in requests)
        for req in requests:
            await self.ledger.increment(req.lot_id, req.quantity)
            lot_compensations_total.labels(reason).inc()
        log.info("released %d reservation(s), reason=%s", len(requests), reason)
