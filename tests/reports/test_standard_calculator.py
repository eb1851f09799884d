from datetime import date, datetime

from src.task_manager.task_manager.attendance.model import AttendanceReportRow
from src.task_manager.task_manager.core.enums import AttendanceStatus
from src.task_manager.task_manager.reports.calculator.standard_calculator import StandardWorkedTimeCalculator


def _row(punch_in, punch_out, break_minutes=60) -> AttendanceReportRow:
    return AttendanceReportRow(
        user_id=1,
        full_name="A",
        username="a",
        department=None,
        shift_name=None,
        break_minutes=break_minutes,
        work_date=date(2025, 1, 1),
        punch_in_time=punch_in,
        punch_out_time=punch_out,
        status=AttendanceStatus.ON_TIME,
    )


def test_standard_calculator_subtracts_break():
    row = _row(datetime(2025, 1, 1, 8, 0), datetime(2025, 1, 1, 17, 0))
    assert StandardWorkedTimeCalculator().worked_minutes(row) == 8 * 60


def test_open_punch_counts_as_zero():
    row = _row(datetime(2025, 1, 1, 8, 0), None)
    assert StandardWorkedTimeCalculator().worked_minutes(row) == 0


def test_short_stay_never_negative():
    row = _row(datetime(2025, 1, 1, 8, 0), datetime(2025, 1, 1, 8, 30))
    assert StandardWorkedTimeCalculator().worked_minutes(row) == 0
