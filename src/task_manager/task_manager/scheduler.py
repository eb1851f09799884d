"""Background jobs: WhatsApp queue, overdue alerts, recurring task generation.

The scheduler is process-wide; under the Flask reloader only the child
process should start it.
"""

from __future__ import annotations

import atexit
import logging
import threading
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from .container import Container
from .core.constants import (
    OVERDUE_CHECK_INTERVAL_MINUTES,
    RECURRING_CHECK_INTERVAL_MINUTES,
    WHATSAPP_QUEUE_INTERVAL_MINUTES,
)

logger = logging.getLogger(__name__)

_scheduler: Optional[BackgroundScheduler] = None
_lock = threading.Lock()


def process_whatsapp_queue(container: Container) -> dict:
    return container.whatsapp_dispatcher.process_batch(limit=container.whatsapp_batch_limit).to_dict()


def schedule_overdue_alerts(container: Container) -> int:
    return container.overdue_alert_service.schedule_alerts()


def generate_recurring_tasks(container: Container) -> int:
    return container.recurring_service.generate_due_tasks()


def run_all_jobs(container: Container) -> dict:
    """Run every job once, in dependency order (new tasks and alerts first, then delivery)."""

    return {
        "recurring_tasks": generate_recurring_tasks(container),
        "overdue_alerts": schedule_overdue_alerts(container),
        "whatsapp": process_whatsapp_queue(container),
    }


def start_scheduler(container: Container, *, timezone: str = "UTC") -> Optional[BackgroundScheduler]:
    global _scheduler

    with _lock:
        if _scheduler is not None:
            logger.info("Scheduler already running, skipping initialization")
            return _scheduler

        scheduler = BackgroundScheduler(timezone=timezone)
        jobs = (
            (process_whatsapp_queue, WHATSAPP_QUEUE_INTERVAL_MINUTES, "process_whatsapp_queue"),
            (schedule_overdue_alerts, OVERDUE_CHECK_INTERVAL_MINUTES, "schedule_overdue_alerts"),
            (generate_recurring_tasks, RECURRING_CHECK_INTERVAL_MINUTES, "generate_recurring_tasks"),
        )
        for func, minutes, job_id in jobs:
            scheduler.add_job(
                func,
                trigger="interval",
                minutes=minutes,
                args=[container],
                id=job_id,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        scheduler.start()
        atexit.register(shutdown_scheduler)
        _scheduler = scheduler

    logger.info("Scheduler started (%s jobs, timezone=%s)", len(jobs), timezone)
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler

    with _lock:
        if _scheduler is None:
            return
        _scheduler.shutdown(wait=False)
        _scheduler = None
    logger.info("Scheduler stopped")
