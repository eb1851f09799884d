from datetime import datetime, timedelta

import pytest

from src.task_manager.task_manager.core.enums import RecurrenceFrequency, Role, TaskPriority, TaskType
from src.task_manager.task_manager.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.task_manager.task_manager.tasks.model import RecurringTemplate
from src.task_manager.task_manager.tasks.recurring import next_occurrence, template_to_dict


def _template_fields(**kw):
    fields = dict(
        title="Fridge temperature log",
        description="Record pharmacy fridge temperature",
        task_type=TaskType.FOLLOW_UP,
        priority=TaskPriority.MODERATE,
        assignee_ids=[2, "3"],
        frequency=RecurrenceFrequency.DAILY,
        start_date=datetime(2026, 3, 1, 9, 0),
        end_date=None,
        number_of_occurrences=None,
        completion_within_hours=4,
        completion_within_days=None,
    )
    fields.update(kw)
    return fields


def _create(world, **kw):
    return world.container.recurring_service.create_template(
        current_role=Role.ADMIN, org_id=1, created_by=1, **_template_fields(**kw)
    )


def _template(frequency, start, last=None) -> RecurringTemplate:
    return RecurringTemplate(
        template_id=1,
        org_id=1,
        title="t",
        task_type=TaskType.FOLLOW_UP,
        priority=TaskPriority.MODERATE,
        created_by=1,
        frequency=frequency,
        start_date=start,
        last_generated_date=last,
    )


@pytest.mark.parametrize(
    "frequency,expected",
    [
        (RecurrenceFrequency.DAILY, datetime(2026, 2, 1, 9, 0)),
        (RecurrenceFrequency.WEEKLY, datetime(2026, 2, 7, 9, 0)),
        (RecurrenceFrequency.MONTHLY, datetime(2026, 2, 28, 9, 0)),
        (RecurrenceFrequency.QUARTERLY, datetime(2026, 4, 30, 9, 0)),
        (RecurrenceFrequency.SIX_MONTHLY, datetime(2026, 7, 31, 9, 0)),
        (RecurrenceFrequency.YEARLY, datetime(2027, 1, 31, 9, 0)),
    ],
)
def test_next_occurrence(frequency, expected):
    assert next_occurrence(_template(frequency, datetime(2026, 1, 31, 9, 0))) == expected


def test_next_occurrence_follows_last_generated():
    template = _template(RecurrenceFrequency.WEEKLY, datetime(2026, 1, 1), last=datetime(2026, 3, 5, 8, 0))
    assert next_occurrence(template) == datetime(2026, 3, 12, 8, 0)


def test_create_template_normalizes_assignees(world):
    template_id = _create(world)
    template = world.templates.get_by_id(template_id)
    assert template.assignee_ids == (2, 3)
    assert template.created_by == 1
    assert template_to_dict(template)["next_occurrence"] == "2026-03-02T09:00"


@pytest.mark.parametrize(
    "changes",
    [
        {"assignee_ids": []},
        {"assignee_ids": [4]},
        {"start_date": None},
        {"end_date": datetime(2026, 2, 1)},
        {"number_of_occurrences": 0},
        {"title": ""},
    ],
)
def test_create_template_validation(world, changes):
    with pytest.raises(ValidationError):
        _create(world, **changes)


def test_staff_cannot_manage_templates(world):
    with pytest.raises(AuthorizationError):
        world.container.recurring_service.create_template(
            current_role=Role.STAFF, org_id=1, created_by=2, **_template_fields()
        )


def test_generate_creates_next_occurrence_with_due_date(world, fixed_now):
    template_id = _create(world)
    service = world.container.recurring_service

    assert service.generate_due_tasks(now=fixed_now) == 1
    [task] = world.tasks.tasks.values()
    assert task.recurring_template_id == template_id
    assert task.assignee_ids == (2, 3)
    assert task.created_by == 1
    assert task.due_date == datetime(2026, 3, 2, 13, 0)
    assert world.templates.get_by_id(template_id).last_generated_date == datetime(2026, 3, 2, 9, 0)

    # one occurrence per run; tomorrow's is inside the lookahead window
    assert service.generate_due_tasks(now=fixed_now) == 1
    assert service.generate_due_tasks(now=fixed_now) == 0
    assert len(world.tasks.tasks) == 2


def test_generated_task_without_completion_window_is_due_at_occurrence(world, fixed_now):
    _create(world, completion_within_hours=None, completion_within_days=None)

    assert world.container.recurring_service.generate_due_tasks(now=fixed_now) == 1
    [task] = world.tasks.tasks.values()
    assert task.due_date == datetime(2026, 3, 2, 9, 0)
    assert task.is_overdue(datetime(2026, 3, 2, 9, 30))


def test_generated_task_copies_template_details(world, fixed_now):
    template_id = _create(
        world,
        task_type=TaskType.CLINICAL_ROUND,
        patient_id=" P-0042 ",
        location="Ward 3",
        round_type="Morning round",
        follow_up_type="Phone",
        advisory_type="Diet",
        contact_number="022 5550 1234",
        manual_whatsapp_number="98765 43210",
        hours_to_complete="1.5",
    )
    template = world.templates.get_by_id(template_id)
    assert template.patient_id == "P-0042"
    assert template.manual_whatsapp_number == "+919876543210"
    assert template.hours_to_complete == 1.5

    world.container.recurring_service.generate_due_tasks(now=fixed_now)
    [task] = world.tasks.tasks.values()
    assert task.task_type == TaskType.CLINICAL_ROUND
    assert task.patient_id == "P-0042"
    assert task.location == "Ward 3"
    assert task.round_type == "Morning round"
    assert task.follow_up_type == "Phone"
    assert task.advisory_type == "Diet"
    assert task.contact_number == "022 5550 1234"
    assert task.manual_whatsapp_number == "+919876543210"
    assert task.hours_to_complete == 1.5


def test_invalid_template_whatsapp_number_is_rejected(world):
    with pytest.raises(ValidationError):
        _create(world, manual_whatsapp_number="12345")


def test_occurrence_limit_deactivates_template(world, fixed_now):
    template_id = _create(world, number_of_occurrences=1, completion_within_hours=None, completion_within_days=2)
    service = world.container.recurring_service

    assert service.generate_due_tasks(now=fixed_now) == 1
    [task] = world.tasks.tasks.values()
    assert task.due_date == datetime(2026, 3, 4, 9, 0)

    assert service.generate_due_tasks(now=fixed_now + timedelta(days=1)) == 0
    assert not world.templates.get_by_id(template_id).is_active


def test_ended_and_inactive_templates_are_skipped(world, fixed_now):
    _create(world, end_date=datetime(2026, 3, 2, 8, 0))
    paused = _create(world)
    world.container.recurring_service.set_template_active(
        current_role=Role.ADMIN, org_id=1, template_id=paused, is_active=False
    )
    assert world.container.recurring_service.generate_due_tasks(now=fixed_now) == 0


def test_template_of_other_org_is_not_found(world):
    template_id = _create(world)
    with pytest.raises(NotFoundError):
        world.container.recurring_service.delete_template(current_role=Role.ADMIN, org_id=2, template_id=template_id)
