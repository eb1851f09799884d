import logging
from datetime import datetime, timedelta

from src.task_manager.task_manager.core.enums import RecurrenceFrequency, Role, TaskPriority, TaskType
from src.task_manager.task_manager.scheduler import run_all_jobs


def test_run_all_jobs_reports_counts_logged_once_by_services(world, caplog):
    world.container.recurring_service.create_template(
        current_role=Role.ADMIN,
        org_id=1,
        created_by=1,
        title="Crash cart check",
        description=None,
        task_type=TaskType.FOLLOW_UP,
        priority=TaskPriority.MODERATE,
        assignee_ids=[2],
        frequency=RecurrenceFrequency.DAILY,
        start_date=datetime.now() - timedelta(days=1),
        end_date=None,
        number_of_occurrences=None,
        completion_within_hours=2,
        completion_within_days=None,
    )
    caplog.set_level(logging.INFO)

    result = run_all_jobs(world.container)

    assert result["recurring_tasks"] == 1
    assert result["overdue_alerts"] == 0
    assert result["whatsapp"]["processed"] == 0
    generated = [r for r in caplog.records if r.getMessage().startswith("Generated")]
    assert len(generated) == 1
    assert not [r for r in caplog.records if r.name.endswith(".scheduler")]
