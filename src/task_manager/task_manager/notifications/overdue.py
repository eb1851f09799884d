from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..core.constants import OVERDUE_FAST_ALERT_LIMIT, OVERDUE_FAST_INTERVAL_HOURS, OVERDUE_SLOW_INTERVAL_HOURS
from ..core.enums import NotificationType
from ..tasks.model import Task
from ..tasks.repository import TaskRepository
from ..users.repository import UserRepository
from .messages import overdue_alert_message
from .service import NotificationService

logger = logging.getLogger(__name__)


def alert_due(task: Task, now: datetime) -> bool:
    """Overdue alert cadence: every 2 hours for the first 12 alerts, then once a day."""

    if task.last_overdue_alert_at is None or task.overdue_alert_count == 0:
        return True
    if task.overdue_alert_count < OVERDUE_FAST_ALERT_LIMIT:
        interval = timedelta(hours=OVERDUE_FAST_INTERVAL_HOURS)
    else:
        interval = timedelta(hours=OVERDUE_SLOW_INTERVAL_HOURS)
    return now - task.last_overdue_alert_at > interval


class OverdueAlertService:
    def __init__(self, tasks: TaskRepository, users: UserRepository, notifications: NotificationService):
        self._tasks = tasks
        self._users = users
        self._notifications = notifications

    def schedule_alerts(self, *, now: Optional[datetime] = None) -> int:
        """Queue ``task_overdue`` alerts for assignees with a WhatsApp number; returns how many were queued."""

        now = now or datetime.now()
        queued = 0

        for task in self._tasks.list_overdue(now=now):
            if not alert_due(task, now):
                continue

            alert_number = task.overdue_alert_count + 1
            hours_overdue = int((now - task.due_date).total_seconds() // 3600)
            recipients = [u for u in self._users.list_by_ids(list(task.assignee_ids)) if u.whatsapp_number]
            for user in recipients:
                self._notifications.notify(
                    user_id=user.user_id,
                    notification_type=NotificationType.TASK_OVERDUE,
                    title=f"Overdue: {task.title}",
                    message=f"{task.title} is overdue by {hours_overdue} hours",
                    task_id=task.task_id,
                    whatsapp_number=user.whatsapp_number,
                    whatsapp_message=overdue_alert_message(
                        assignee_name=user.full_name,
                        title=task.title,
                        priority=task.priority.value,
                        hours_overdue=hours_overdue,
                        due_date=task.due_date,
                        description=task.description,
                        alert_number=alert_number,
                    ),
                )
                queued += 1

            if recipients:
                self._tasks.record_overdue_alert(task.task_id, at=now)

        if queued:
            logger.info("Queued %s overdue alert(s)", queued)
        return queued
