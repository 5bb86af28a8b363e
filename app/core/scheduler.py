# app/core/scheduler.py
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import get_settings

log = logging.getLogger("wmsprep.scheduler")

_scheduler: AsyncIOScheduler | None = None


async def _job_lot_alert() -> None:
    from app.db.session import AsyncSessionLocal
    from app.jobs.lot_alert import run_once

    try:
        await run_once(AsyncSessionLocal)
    except Exception:
        log.exception("lot alert job failed")


def init_scheduler() -> AsyncIOScheduler | None:
    """WMS_LOT_ALERT_ENABLED=1 时启动批次预警定时任务。"""
    global _scheduler
    settings = get_settings()
    if not settings.LOT_ALERT_ENABLED or _scheduler is not None:
        return _scheduler
    _scheduler = AsyncIOScheduler(timezone=settings.TIMEZONE)
    _scheduler.add_job(
        _job_lot_alert,
        CronTrigger.from_crontab(settings.LOT_ALERT_CRON, timezone=settings.TIMEZONE),
        id="lot_alert",
        replace_existing=True,
    )
    _scheduler.start()
    log.info("lot alert scheduler started: cron=%s tz=%s", settings.LOT_ALERT_CRON, settings.TIMEZONE)
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
