from datetime import date, datetime, timedelta

import pytest

from src.task_manager.task_manager.core.enums import NotificationType, Role, TaskPriority, TaskStatus, TaskType
from src.task_manager.task_manager.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.task_manager.task_manager.tasks.model import TaskFilter
from src.task_manager.task_manager.tasks.service import task_to_dict


def _create(world, now, **kw):
    fields = dict(
        current_user_id=1,
        org_id=1,
        task_type=TaskType.CLINICAL_ROUND,
        title="Ward round",
        assignee_ids=[2],
        now=now,
    )
    fields.update(kw)
    return world.container.task_service.create_task(**fields)


def test_create_task_notifies_assignees_and_schedules_reminder(world, fixed_now):
    task = _create(world, fixed_now, assignee_ids=[2, 3], due_date=fixed_now + timedelta(hours=5))

    assert task.assignee_ids == (2, 3)
    assert task.status == TaskStatus.NEW

    assigned = world.notifications.of_type(NotificationType.TASK_ASSIGNED)
    assert {n.user_id for n in assigned} == {2, 3}
    by_user = {n.user_id: n for n in assigned}
    assert by_user[2].whatsapp_number == "+919800000002"
    assert "Ward round" in by_user[2].whatsapp_message
    assert by_user[3].whatsapp_number is None
    assert by_user[3].whatsapp_message is None

    reminders = world.notifications.of_type(NotificationType.TASK_DUE)
    assert {n.user_id for n in reminders} == {2, 3}
    assert all(n.scheduled_for == fixed_now + timedelta(hours=4) for n in reminders)


def test_no_reminder_when_due_within_an_hour(world, fixed_now):
    _create(world, fixed_now, due_date=fixed_now + timedelta(minutes=45))
    assert world.notifications.of_type(NotificationType.TASK_DUE) == []


def test_critical_task_is_urgent(world, fixed_now):
    _create(world, fixed_now, priority=TaskPriority.CRITICAL)
    [urgent] = world.notifications.of_type(NotificationType.TASK_URGENT)
    assert urgent.title == "Urgent task: Ward round"
    assert "URGENT TASK" in urgent.whatsapp_message
    assert world.notifications.of_type(NotificationType.TASK_ASSIGNED) == []


def test_personal_task_defaults_to_creator_without_self_notification(world, fixed_now):
    task = _create(world, fixed_now, current_user_id=2, task_type=TaskType.PERSONAL_TASK, assignee_ids=[])
    assert task.assignee_ids == (2,)
    assert world.notifications.of_type(NotificationType.TASK_ASSIGNED) == []


def test_hours_to_complete_sets_due_date(world, fixed_now):
    task = _create(world, fixed_now, hours_to_complete="3")
    assert task.due_date == fixed_now + timedelta(hours=3)
    assert task.hours_to_complete == 3.0


def test_manual_whatsapp_number_overrides_profile(world, fixed_now):
    _create(world, fixed_now, assignee_ids=[3], manual_whatsapp_number="9811111111")
    [n] = world.notifications.of_type(NotificationType.TASK_ASSIGNED)
    assert n.whatsapp_number == "+919811111111"


@pytest.mark.parametrize(
    "changes",
    [
        {"assignee_ids": [4]},
        {"assignee_ids": []},
        {"assignee_ids": ["abc"]},
        {"title": "  "},
        {"hours_to_complete": "-1"},
        {"status": TaskStatus.COMPLETED},
    ],
)
def test_create_task_validation(world, fixed_now, changes):
    with pytest.raises(ValidationError):
        _create(world, fixed_now, **changes)


def test_status_changes_and_completion_notice(world, fixed_now):
    task = _create(world, fixed_now)
    service = world.container.task_service

    with pytest.raises(AuthorizationError):
        service.change_status(
            current_role=Role.STAFF, current_user_id=3, org_id=1, task_id=task.task_id, status=TaskStatus.IN_PROGRESS
        )
    with pytest.raises(ValidationError):
        service.change_status(
            current_role=Role.STAFF, current_user_id=2, org_id=1, task_id=task.task_id, status=TaskStatus.OVERDUE
        )

    done_at = fixed_now + timedelta(hours=2)
    done = service.change_status(
        current_role=Role.STAFF,
        current_user_id=2,
        org_id=1,
        task_id=task.task_id,
        status=TaskStatus.COMPLETED,
        now=done_at,
    )
    assert done.status == TaskStatus.COMPLETED
    assert done.completed_at == done_at

    [notice] = world.notifications.of_type(NotificationType.TASK_COMPLETED)
    assert notice.user_id == 1
    assert notice.message == "Ward round was completed by Priya Shah"
    assert notice.whatsapp_number == "+919800000001"


def test_creator_completing_own_task_is_silent(world, fixed_now):
    task = _create(world, fixed_now)
    world.container.task_service.change_status(
        current_role=Role.ADMIN, current_user_id=1, org_id=1, task_id=task.task_id, status=TaskStatus.COMPLETED
    )
    assert world.notifications.of_type(NotificationType.TASK_COMPLETED) == []


def test_update_task_rules(world, fixed_now):
    task = _create(world, fixed_now, assignee_ids=[2, 3])
    service = world.container.task_service

    with pytest.raises(AuthorizationError):
        service.update_task(
            current_role=Role.STAFF, current_user_id=2, org_id=1, task_id=task.task_id, changes={"title": "x"}
        )
    with pytest.raises(ValidationError, match="status"):
        service.update_task(
            current_role=Role.ADMIN, current_user_id=1, org_id=1, task_id=task.task_id, changes={"status": "completed"}
        )

    updated = service.update_task(
        current_role=Role.ADMIN,
        current_user_id=1,
        org_id=1,
        task_id=task.task_id,
        changes={"title": "Evening round", "priority": "critical"},
        assignee_ids=[2],
        now=fixed_now,
    )
    assert updated.title == "Evening round"
    assert updated.priority == TaskPriority.CRITICAL
    assert updated.assignee_ids == (2,)
    assert updated.updated_at == fixed_now
    assert [n.user_id for n in world.notifications.of_type(NotificationType.TASK_UPDATED)] == [2]


def test_task_of_other_org_is_not_found(world, fixed_now):
    task = _create(world, fixed_now)
    with pytest.raises(NotFoundError):
        world.container.task_service.get_task(org_id=2, task_id=task.task_id)


def test_list_tasks_scope_filters_and_sorting(world, fixed_now):
    late = _create(world, fixed_now, title="Late follow-up", due_date=fixed_now - timedelta(hours=2))
    _create(world, fixed_now, title="Critical round", assignee_ids=[3], priority=TaskPriority.CRITICAL)
    _create(world, fixed_now, title="Later", due_date=fixed_now + timedelta(days=1), priority=TaskPriority.LESS_IMPORTANT)
    service = world.container.task_service

    mine = service.list_tasks(current_role=Role.STAFF, current_user_id=2, org_id=1, now=fixed_now)
    assert [t.title for t in mine] == ["Late follow-up", "Later"]

    everything = service.list_tasks(
        current_role=Role.ADMIN,
        current_user_id=1,
        org_id=1,
        task_filter=TaskFilter(sort_by="priority"),
        now=fixed_now,
    )
    assert everything[0].title == "Critical round"

    overdue = service.list_tasks(
        current_role=Role.ADMIN,
        current_user_id=1,
        org_id=1,
        task_filter=TaskFilter(status=TaskStatus.OVERDUE),
        now=fixed_now,
    )
    assert [t.task_id for t in overdue] == [late.task_id]
    assert task_to_dict(late, now=fixed_now)["status"] == "overdue"
    assert task_to_dict(late, now=fixed_now)["stored_status"] == "new"

    found = service.list_tasks(
        current_role=Role.ADMIN, current_user_id=1, org_id=1, task_filter=TaskFilter(search="FOLLOW"), now=fixed_now
    )
    assert [t.title for t in found] == ["Late follow-up"]

    with pytest.raises(ValidationError):
        service.list_tasks(
            current_role=Role.ADMIN, current_user_id=1, org_id=1, task_filter=TaskFilter(sort_by="title")
        )


@pytest.mark.parametrize("descending,expected", [(False, ["Soon", "Later", "Undated"]), (True, ["Later", "Soon", "Undated"])])
def test_undated_tasks_sort_last_in_both_directions(world, fixed_now, descending, expected):
    _create(world, fixed_now, title="Undated")
    _create(world, fixed_now, title="Later", due_date=fixed_now + timedelta(days=2))
    _create(world, fixed_now, title="Soon", due_date=fixed_now + timedelta(hours=3))

    tasks = world.container.task_service.list_tasks(
        current_role=Role.ADMIN,
        current_user_id=1,
        org_id=1,
        task_filter=TaskFilter(sort_by="due_date", descending=descending),
        now=fixed_now,
    )
    assert [t.title for t in tasks] == expected


def test_dashboard_counts(world, fixed_now):
    _create(world, fixed_now, due_date=fixed_now - timedelta(hours=1))
    _create(world, fixed_now, assignee_ids=[3])
    counts = world.container.task_service.dashboard_counts(org_id=1, now=fixed_now)
    assert counts["total"] == 2
    assert counts["overdue"] == 1
    assert counts["new"] == 1

    assert world.container.task_service.dashboard_counts(org_id=1, user_id=3, now=fixed_now)["total"] == 1


def test_delete_tasks_is_admin_only(world, fixed_now):
    task = _create(world, fixed_now)
    service = world.container.task_service
    with pytest.raises(AuthorizationError):
        service.delete_tasks(current_role=Role.STAFF, org_id=1, task_ids=[task.task_id])
    assert service.delete_tasks(current_role=Role.ADMIN, org_id=1, task_ids=[str(task.task_id), 999]) == 1


def test_quality_entries(world, fixed_now):
    task = _create(world, fixed_now)
    service = world.container.task_service
    service.add_quality_entry(
        current_user_id=2, org_id=1, task_id=task.task_id, entry_date=date(2026, 3, 2), description="Checked vitals"
    )
    with pytest.raises(ValidationError):
        service.add_quality_entry(
            current_user_id=2, org_id=1, task_id=task.task_id, entry_date=date(2026, 3, 2), description=""
        )
    [entry] = service.list_quality_entries(org_id=1, task_id=task.task_id)
    assert entry.description == "Checked vitals"
    assert entry.remark is None
