from datetime import date, datetime, time

from src.task_manager.task_manager.attendance.factory import AttendanceStrategyFactory
from src.task_manager.task_manager.attendance.strategies.early_out_strategy import EarlyOutStrategy
from src.task_manager.task_manager.attendance.strategies.late_strategy import LateStrategy
from src.task_manager.task_manager.attendance.strategies.normal_strategy import NormalStrategy
from src.task_manager.task_manager.shifts.model import Shift


def _shift(**kw) -> Shift:
    fields = dict(shift_id=1, org_id=1, shift_name="Morning", start_time=time(8, 0), end_time=time(17, 0))
    fields.update(kw)
    return Shift(**fields)


def test_punch_in_on_time_within_threshold_seconds_ignored():
    shift = _shift(late_threshold_minutes=5)
    strategy = AttendanceStrategyFactory().for_punch_in(
        now=datetime(2025, 1, 1, 8, 5, 59), work_date=date(2025, 1, 1), shift=shift
    )
    assert isinstance(strategy, NormalStrategy)


def test_punch_in_late_after_threshold():
    shift = _shift(late_threshold_minutes=5)
    strategy = AttendanceStrategyFactory().for_punch_in(
        now=datetime(2025, 1, 1, 8, 6, 0), work_date=date(2025, 1, 1), shift=shift
    )
    assert isinstance(strategy, LateStrategy)


def test_grace_minutes_extend_threshold():
    shift = _shift(late_threshold_minutes=5)
    strategy = AttendanceStrategyFactory(grace_minutes=10).for_punch_in(
        now=datetime(2025, 1, 1, 8, 14, 0), work_date=date(2025, 1, 1), shift=shift
    )
    assert isinstance(strategy, NormalStrategy)


def test_no_shift_is_always_normal():
    factory = AttendanceStrategyFactory()
    now = datetime(2025, 1, 1, 23, 0)
    assert isinstance(factory.for_punch_in(now=now, work_date=now.date(), shift=None), NormalStrategy)
    assert isinstance(
        factory.for_punch_out(now=now, work_date=now.date(), punch_in=now, shift=None), NormalStrategy
    )


def test_punch_out_early_before_threshold():
    shift = _shift(early_out_threshold_minutes=15)
    factory = AttendanceStrategyFactory()
    punch_in = datetime(2025, 1, 1, 8, 0)
    assert isinstance(
        factory.for_punch_out(now=datetime(2025, 1, 1, 16, 44), work_date=punch_in.date(), punch_in=punch_in, shift=shift),
        EarlyOutStrategy,
    )
    assert isinstance(
        factory.for_punch_out(now=datetime(2025, 1, 1, 16, 45), work_date=punch_in.date(), punch_in=punch_in, shift=shift),
        NormalStrategy,
    )


def test_overnight_shift_early_out_only_next_morning():
    shift = _shift(start_time=time(21, 0), end_time=time(7, 0), is_overnight=True)
    factory = AttendanceStrategyFactory()
    punch_in = datetime(2025, 1, 1, 21, 0)

    # leaving at 23:00 the same evening is not judged against the 07:00 end
    assert isinstance(
        factory.for_punch_out(now=datetime(2025, 1, 1, 23, 0), work_date=punch_in.date(), punch_in=punch_in, shift=shift),
        NormalStrategy,
    )
    assert isinstance(
        factory.for_punch_out(now=datetime(2025, 1, 2, 5, 0), work_date=punch_in.date(), punch_in=punch_in, shift=shift),
        EarlyOutStrategy,
    )
    assert isinstance(
        factory.for_punch_out(now=datetime(2025, 1, 2, 7, 5), work_date=punch_in.date(), punch_in=punch_in, shift=shift),
        NormalStrategy,
    )


def test_overnight_punch_in_after_midnight_is_not_early_the_same_day():
    shift = _shift(start_time=time(21, 0), end_time=time(7, 0), is_overnight=True)
    factory = AttendanceStrategyFactory()
    # arrived after midnight: the record belongs to the previous work date
    punch_in = datetime(2025, 1, 2, 0, 30)

    assert isinstance(
        factory.for_punch_out(now=datetime(2025, 1, 2, 6, 40), work_date=date(2025, 1, 1), punch_in=punch_in, shift=shift),
        NormalStrategy,
    )
