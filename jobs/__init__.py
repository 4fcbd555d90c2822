"""
Scheduled jobs.
"""

from jobs.scheduler import (
    create_scheduler,
    start_scheduler,
    shutdown_scheduler,
    weekly_inventory_report_job,
    WEEKLY_REPORT_JOB_ID,
)

__all__ = [
    "create_scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "weekly_inventory_report_job",
    "WEEKLY_REPORT_JOB_ID",
]
