from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.cleanup.collector import GarbageCollector, SweepInProgressError

logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = "cleanup_sweep"


def build_scheduler() -> BackgroundScheduler:
    return BackgroundScheduler(timezone="UTC")


def run_cleanup_job(collector: GarbageCollector) -> None:
    try:
        collector.sweep()
    except SweepInProgressError:
        logger.info("Skipping scheduled cleanup; a sweep is already running")
    except Exception:
        logger.exception("Scheduled cleanup sweep failed")


def register_cleanup_job(
    scheduler: BackgroundScheduler,
    collector: GarbageCollector,
    *,
    interval_minutes: int,
) -> bool:
    if interval_minutes <= 0:
        logger.info("Scheduled cleanup disabled")
        return False

    scheduler.add_job(
        run_cleanup_job,
        trigger=IntervalTrigger(minutes=interval_minutes),
        args=[collector],
        id=CLEANUP_JOB_ID,
        name="Expired upload cleanup",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Scheduled cleanup every %s minutes", interval_minutes)
    return True
