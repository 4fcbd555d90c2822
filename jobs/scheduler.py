"""
Weekly report scheduler.

Jobs:
- weekly_inventory_report: recompute metrics and mail the report
  (INVENTORY_REPORT_CRON, default Saturday 02:00)

The scheduler only calls into the report service; the same operation is
exposed on demand through POST /api/inventory-metrics/send-weekly-report.
"""

from typing import Callable, Optional

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MISSED,
    JobExecutionEvent,
)
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
import structlog

from config import settings
from services.report_service import get_inventory_report_service

logger = structlog.get_logger(__name__)

WEEKLY_REPORT_JOB_ID = "weekly_inventory_report"

_scheduler: Optional[BackgroundScheduler] = None


def weekly_inventory_report_job() -> dict:
    """
    Run the weekly report with deployment defaults.

    Queues behind an on-demand recompute rather than skipping the week.
    """
    logger.info("weekly_report_job_started")
    result = get_inventory_report_service().run_weekly_report(wait=True)
    return {
        "generation": result.run.id,
        "rows": result.row_count,
        "delivered": result.delivered,
    }


def log_job_event(event: JobExecutionEvent) -> None:
    """Route APScheduler job outcomes to structlog."""
    if event.code == EVENT_JOB_ERROR:
        logger.error(
            "scheduled_job_failed",
            job_id=event.job_id,
            error=str(event.exception),
            error_type=type(event.exception).__name__
        )
    elif event.code == EVENT_JOB_MISSED:
        logger.warning("scheduled_job_missed", job_id=event.job_id)
    else:
        logger.info("scheduled_job_completed", job_id=event.job_id, result=event.retval)


def create_scheduler(
    job: Callable[[], object] = weekly_inventory_report_job,
    cron: Optional[str] = None,
    timezone: Optional[str] = None,
) -> BackgroundScheduler:
    """
    Build a scheduler with the weekly report job registered.

    Args:
        job: Callable to run on schedule
        cron: Crontab expression (defaults to INVENTORY_REPORT_CRON)
        timezone: Timezone name (defaults to INVENTORY_REPORT_TIMEZONE)

    Returns:
        Scheduler, not yet started
    """
    tz = timezone or settings.inventory_report_timezone
    trigger = CronTrigger.from_crontab(cron or settings.inventory_report_cron, timezone=tz)

    scheduler = BackgroundScheduler(timezone=tz)
    scheduler.add_job(
        job,
        trigger=trigger,
        id=WEEKLY_REPORT_JOB_ID,
        name="Weekly inventory report",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_listener(
        log_job_event,
        EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED
    )
    return scheduler


def start_scheduler() -> Optional[BackgroundScheduler]:
    """Start the process-wide scheduler unless disabled in settings."""
    global _scheduler

    if not settings.scheduler_enabled:
        logger.info("scheduler_disabled")
        return None

    if _scheduler is None:
        _scheduler = create_scheduler()
        _scheduler.start()

        job = _scheduler.get_job(WEEKLY_REPORT_JOB_ID)
        logger.info(
            "scheduler_started",
            job_id=WEEKLY_REPORT_JOB_ID,
            cron=settings.inventory_report_cron,
            next_run=str(job.next_run_time) if job else None
        )

    return _scheduler


def shutdown_scheduler() -> None:
    """Stop the scheduler without waiting for a running job."""
    global _scheduler

    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("scheduler_stopped")
