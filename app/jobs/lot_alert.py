"""
批次预警 Job（低库存 / 临期）

用法：
  - 手动单次：
        python -m app.jobs.lot_alert
  - 定时：WMS_LOT_ALERT_ENABLED=1 时由 app.core.scheduler 按 WMS_LOT_ALERT_CRON 调度 run_once()。
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.core.logging import setup_logging
from app.db.engine import create_async_engine_safe
from app.db.session import make_session_maker, normalize_async_dsn
from app.services.lot_alert_service import AlertSink, LotAlert, LotAlertService

log = logging.getLogger("wmsprep.jobs")


async def run_once(
    maker: async_sessionmaker[AsyncSession],
    sink: Optional[AlertSink] = None,
) -> List[LotAlert]:
    async with maker() as session:
        return await LotAlertService(session).scan_and_notify(sink)


async def main() -> None:
    """
    独立运行入口：连接与应用相同的 DATABASE_URL，扫一遍并输出预警数量。
    """
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    engine = create_async_engine_safe(
        normalize_async_dsn(settings.DATABASE_URL),
        sqlite_timeout=settings.SQLITE_BUSY_TIMEOUT,
    )
    try:
        alerts = await run_once(make_session_maker(engine))
        log.info("[LotAlert] %d alert(s)", len(alerts))
    finally:
        await engine.dispose()


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
