# app/api/routers/inventory_lots.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.services.lot_alert_service import LotAlertService

router = APIRouter(prefix="/inventory-lots", tags=["inventory-lots"])


class LotAlertOut(BaseModel):
    kind: str
    lot_id: int
    lot_no: str
    product_id: int
    product_name: str
    sku_code: str
    department_code: Optional[str]
    quantity_on_hand: Decimal
    expiry_at: datetime
    threshold: Optional[Decimal] = None
    days_left: Optional[int] = None
    message: str

    model_config = ConfigDict(from_attributes=True)


@router.get("/alerts", response_model=List[LotAlertOut])
async def list_lot_alerts(
    kind: Optional[str] = Query(None, description="low_stock | near_expiry；为空返回全部"),
    session: AsyncSession = Depends(get_session),
) -> List[LotAlertOut]:
    alerts = await LotAlertService(session).scan()
    if kind:
        alerts = [a for a in alerts if a.kind == kind]
    return [LotAlertOut.model_validate(a) for a in alerts]
