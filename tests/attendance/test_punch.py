from datetime import date, datetime

import pytest

from src.task_manager.task_manager.attendance.model import PunchLocation
from src.task_manager.task_manager.attendance.service import is_half_day, record_to_dict, worked_hours
from src.task_manager.task_manager.core.enums import AttendanceStatus, EnforcementMode, Role
from src.task_manager.task_manager.core.exceptions import (
    AuthorizationError,
    GeofenceViolationError,
    ValidationError,
)
from src.task_manager.task_manager.organizations.model import GeofenceSettings

AT_CLINIC = PunchLocation(latitude=19.0761, longitude=72.8777, address="Front desk")
FAR_AWAY = PunchLocation(latitude=19.0860, longitude=72.8777)


def _warning_mode(world):
    world.organizations.update_geofence(
        1,
        latitude=19.0760,
        longitude=72.8777,
        address=None,
        settings=GeofenceSettings(enforcement_mode=EnforcementMode.WARNING),
    )


def test_worked_hours_subtracts_break_and_never_goes_negative():
    assert worked_hours(datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 17, 30), 1.0) == (8.5, 7.5)
    assert worked_hours(datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 9, 30), 1.0) == (0.5, 0.0)


def test_punch_in_on_time_inside_geofence(world):
    service = world.container.attendance_service
    record = service.punch_in(2, location=AT_CLINIC, now=datetime(2026, 3, 2, 9, 5))

    assert record.work_date == date(2026, 3, 2)
    assert record.status == AttendanceStatus.ON_TIME
    assert record.shift_id == 1
    assert record.punch_in_distance is not None and record.punch_in_distance < 20
    assert not record.is_outside_geofence
    assert not record.is_weekend


def test_second_punch_in_is_rejected_while_open(world):
    service = world.container.attendance_service
    service.punch_in(2, location=AT_CLINIC, now=datetime(2026, 3, 2, 9, 0))
    with pytest.raises(ValidationError, match="already have an active punch-in"):
        service.punch_in(2, location=AT_CLINIC, now=datetime(2026, 3, 2, 9, 30))


def test_punch_in_after_completed_day_is_rejected(world):
    service = world.container.attendance_service
    service.punch_in(2, now=datetime(2026, 3, 2, 9, 0))
    service.punch_out(2, now=datetime(2026, 3, 2, 18, 0))
    with pytest.raises(ValidationError, match="already complete"):
        service.punch_in(2, now=datetime(2026, 3, 2, 19, 0))


def test_strict_geofence_blocks_punch(world):
    with pytest.raises(GeofenceViolationError):
        world.container.attendance_service.punch_in(2, location=FAR_AWAY, now=datetime(2026, 3, 2, 9, 0))
    assert world.attendance.records == {}


def test_punch_out_computes_hours_and_early_out(world):
    service = world.container.attendance_service
    service.punch_in(2, location=AT_CLINIC, now=datetime(2026, 3, 2, 9, 0))
    record = service.punch_out(2, location=AT_CLINIC, now=datetime(2026, 3, 2, 17, 30))

    assert record.status == AttendanceStatus.EARLY_OUT
    assert record.is_early_out
    assert record.total_hours == 8.5
    assert record.break_hours == 1.0
    assert record.effective_hours == 7.5


def test_late_and_early_out_combine(world):
    service = world.container.attendance_service
    record = service.punch_in(2, now=datetime(2026, 3, 2, 9, 20))
    assert record.status == AttendanceStatus.LATE
    assert record.is_late

    record = service.punch_out(2, now=datetime(2026, 3, 2, 12, 0))
    assert record.status == AttendanceStatus.LATE_AND_EARLY_OUT


def test_punch_out_without_punch_in(world):
    with pytest.raises(ValidationError, match="No active punch-in"):
        world.container.attendance_service.punch_out(2, now=datetime(2026, 3, 2, 18, 0))


def test_inactive_user_cannot_punch(world):
    world.users.set_active(2, is_active=False)
    with pytest.raises(ValidationError):
        world.container.attendance_service.punch_in(2, now=datetime(2026, 3, 2, 9, 0))


def test_weekend_and_holiday_flags(world):
    world.organizations.add_holiday(1, holiday_date=date(2026, 3, 4), holiday_name="Holi")
    service = world.container.attendance_service

    sunday = service.punch_in(2, now=datetime(2026, 3, 1, 9, 0))
    assert sunday.is_weekend
    service.punch_out(2, now=datetime(2026, 3, 1, 18, 0))

    holiday = service.punch_in(2, now=datetime(2026, 3, 4, 9, 0))
    assert holiday.is_holiday
    assert not holiday.is_weekend


def _night_shift(world, user_id=3):
    night = world.container.shift_service.create_shift(
        current_role=Role.ADMIN,
        org_id=1,
        shift_name="Night",
        start_time="21:00",
        end_time="07:00",
        break_minutes=30,
    )
    world.shifts.close_open_assignments(user_id, effective_to=date(2026, 3, 1))
    world.shifts.create_assignment(
        user_id=user_id, shift_id=night, effective_from=date(2026, 3, 2), effective_to=None, assigned_by=1
    )
    return night


def test_overnight_shift_keeps_start_date(world):
    _night_shift(world)
    service = world.container.attendance_service

    record = service.punch_in(3, now=datetime(2026, 3, 3, 0, 30))
    assert record.work_date == date(2026, 3, 2)
    assert record.is_late

    record = service.punch_out(3, now=datetime(2026, 3, 3, 7, 0))
    assert record.total_hours == 6.5
    assert record.effective_hours == 6.0
    assert not record.is_early_out
    assert not record.is_half_day


def test_overnight_punch_out_needs_six_hours(world):
    _night_shift(world)
    service = world.container.attendance_service
    service.punch_in(3, now=datetime(2026, 3, 2, 21, 0))

    with pytest.raises(ValidationError, match="Too early to punch out"):
        service.punch_out(3, now=datetime(2026, 3, 3, 2, 59))
    assert world.attendance.get_open_record(3, since=date(2026, 3, 1)) is not None

    record = service.punch_out(3, now=datetime(2026, 3, 3, 3, 0))
    assert record.total_hours == 6.0
    assert record.is_early_out


def test_overnight_punch_out_after_eighteen_hours_is_rejected(world):
    _night_shift(world)
    service = world.container.attendance_service
    service.punch_in(3, now=datetime(2026, 3, 2, 21, 0))

    with pytest.raises(ValidationError, match="maximum shift duration of 18 hours"):
        service.punch_out(3, now=datetime(2026, 3, 3, 15, 1))


def test_short_day_is_flagged_half_day(world):
    service = world.container.attendance_service
    service.punch_in(2, now=datetime(2026, 3, 2, 9, 0))
    record = service.punch_out(2, now=datetime(2026, 3, 2, 14, 0))

    # 9h shift: 4.0 effective hours is under half
    assert record.effective_hours == 4.0
    assert record.is_half_day
    assert record_to_dict(record)["is_half_day"] is True


def test_is_half_day_without_shift_uses_default_day():
    assert is_half_day(3.5, None)
    assert not is_half_day(4.0, None)


def test_close_stale_sessions(world):
    service = world.container.attendance_service
    stale = service.punch_in(2, now=datetime(2026, 3, 1, 8, 0))
    fresh = service.punch_in(3, now=datetime(2026, 3, 2, 9, 0))
    now = datetime(2026, 3, 2, 10, 0)

    with pytest.raises(AuthorizationError):
        service.close_stale_open_sessions(current_role=Role.STAFF, admin_user_id=2, org_id=1, now=now)
    with pytest.raises(ValidationError):
        service.close_stale_open_sessions(
            current_role=Role.ADMIN, admin_user_id=1, org_id=1, max_open_hours="0", now=now
        )

    result = service.close_stale_open_sessions(current_role=Role.ADMIN, admin_user_id=1, org_id=1, now=now)
    assert result == {"closed_count": 1, "scanned_count": 2, "closed_ids": [stale.attendance_id]}

    closed = world.attendance.get_by_id(stale.attendance_id)
    assert closed.punch_out_time == datetime(2026, 3, 2, 2, 0)
    assert closed.is_regularized
    assert closed.regularized_by == 1
    assert "18h" in closed.regularized_reason
    assert world.attendance.get_by_id(fresh.attendance_id).punch_out_time is None

    # a shorter limit catches the recent one, capped at now
    result = service.close_stale_open_sessions(
        current_role=Role.ADMIN, admin_user_id=1, org_id=1, max_open_hours=1, now=now
    )
    assert result["closed_ids"] == [fresh.attendance_id]
    assert world.attendance.get_by_id(fresh.attendance_id).punch_out_time == now


def test_warning_mode_records_violation_and_admin_override(world):
    _warning_mode(world)
    service = world.container.attendance_service
    record = service.punch_in(2, location=FAR_AWAY, now=datetime(2026, 3, 2, 9, 0))
    assert record.is_outside_geofence

    with pytest.raises(AuthorizationError):
        service.override_geofence(
            current_role=Role.STAFF, admin_user_id=2, org_id=1, attendance_id=record.attendance_id, reason="x"
        )

    service.override_geofence(
        current_role=Role.ADMIN,
        admin_user_id=1,
        org_id=1,
        attendance_id=record.attendance_id,
        reason="Home visit",
        now=datetime(2026, 3, 2, 10, 0),
    )
    updated = world.attendance.get_by_id(record.attendance_id)
    assert updated.geofence_override_by == 1
    assert updated.geofence_override_reason == "Home visit"

    violations = service.geofence_violations(
        current_role=Role.ADMIN, org_id=1, start=date(2026, 3, 1), end=date(2026, 3, 2)
    )
    assert [v.attendance_id for v in violations] == [record.attendance_id]


def test_override_requires_a_violation(world):
    service = world.container.attendance_service
    record = service.punch_in(2, location=AT_CLINIC, now=datetime(2026, 3, 2, 9, 0))
    with pytest.raises(ValidationError, match="no geofence violation"):
        service.override_geofence(
            current_role=Role.ADMIN, admin_user_id=1, org_id=1, attendance_id=record.attendance_id, reason="ok"
        )


def test_today_status_transitions(world):
    service = world.container.attendance_service
    now = datetime(2026, 3, 2, 8, 0)
    assert service.today_status(2, now=now)["state"] == "not_punched"

    service.punch_in(2, now=datetime(2026, 3, 2, 9, 0))
    assert service.today_status(2, now=datetime(2026, 3, 2, 12, 0))["state"] == "punched_in"

    service.punch_out(2, now=datetime(2026, 3, 2, 18, 0))
    status = service.today_status(2, now=datetime(2026, 3, 2, 19, 0))
    assert status["state"] == "punched_out"
    assert status["record"]["punch_out_time"] == "2026-03-02 18:00:00"


def test_team_attendance_is_admin_only(world):
    with pytest.raises(AuthorizationError):
        world.container.attendance_service.list_for_org(
            current_role=Role.STAFF, org_id=1, start=date(2026, 3, 1), end=date(2026, 3, 2)
        )
