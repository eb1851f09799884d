from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

import pandas as pd

from ..attendance.repository import AttendanceRepository
from ..core.constants import DEFAULT_WEEKLY_OFF_DAYS
from ..core.enums import Role, TaskStatus
from ..core.exceptions import AuthorizationError, ValidationError
from ..organizations.repository import OrganizationRepository
from ..shifts.model import EmployeeShift, Shift
from ..shifts.repository import ShiftRepository
from ..tasks.repository import TaskRepository
from ..users.model import User
from ..users.repository import UserRepository
from .calculator.base import WorkedTimeCalculator
from .calculator.standard_calculator import StandardWorkedTimeCalculator

REPORT_COLUMNS = [
    "work_date",
    "user_id",
    "full_name",
    "username",
    "department",
    "shift_name",
    "punch_in",
    "punch_out",
    "status",
    "worked_hours",
    "late",
    "early_out",
    "regularized",
    "outside_geofence",
]

SUMMARY_COLUMNS = [
    "user_id",
    "full_name",
    "department",
    "total_days",
    "present",
    "absent",
    "late",
    "early_out",
    "regularized",
    "total_hours",
    "average_hours",
]


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: list[dict]


def _hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _days(start: date, end: date):
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


class ReportService:
    """Attendance and task reports for the admin dashboard."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        shifts: ShiftRepository,
        organizations: OrganizationRepository,
        tasks: TaskRepository,
        *,
        calculator: Optional[WorkedTimeCalculator] = None,
    ):
        self._attendance = attendance
        self._users = users
        self._shifts = shifts
        self._organizations = organizations
        self._tasks = tasks
        self._calculator = calculator or StandardWorkedTimeCalculator()

    @staticmethod
    def _check_period(start: date, end: date) -> None:
        if end < start:
            raise ValidationError("End date must be on or after the start date")

    def _weekly_off_lookup(self, user_id: int):
        assignments: Sequence[EmployeeShift] = self._shifts.list_assignments(user_id)
        shifts: dict[int, Optional[Shift]] = {}

        def is_off(day: date) -> bool:
            for a in assignments:
                if a.covers(day):
                    if a.shift_id not in shifts:
                        shifts[a.shift_id] = self._shifts.get_by_id(a.shift_id)
                    shift = shifts[a.shift_id]
                    if shift:
                        return shift.is_weekly_off(day)
                    break
            return day.strftime("%A").lower() in DEFAULT_WEEKLY_OFF_DAYS

        return is_off

    def _working_days(self, org_id: int, user: User, start: date, end: date) -> set[date]:
        holidays = {h.holiday_date for h in self._organizations.list_holidays(org_id, start=start, end=end)}
        is_off = self._weekly_off_lookup(user.user_id)
        return {d for d in _days(start, end) if d not in holidays and not is_off(d)}

    def build_attendance_report(
        self,
        *,
        current_role: Role,
        org_id: int,
        start: date,
        end: date,
        user_id: Optional[int] = None,
        department: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ReportData:
        """Detail rows plus a per-employee summary.

        Absence is counted only up to ``today``: future working days are not absences yet.
        """

        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can view attendance reports")
        self._check_period(start, end)
        today = today or date.today()

        query_rows = self._attendance.get_report_rows(
            org_id=int(org_id), start_date=start, end_date=end, department=department, user_id=user_id
        )

        out_rows: list[dict] = []
        per_user: dict[int, dict] = {}

        for r in query_rows:
            minutes = self._calculator.worked_minutes(r)
            out_rows.append(
                {
                    "work_date": r.work_date.strftime("%Y-%m-%d"),
                    "user_id": r.user_id,
                    "full_name": r.full_name,
                    "username": r.username,
                    "department": r.department or "-",
                    "shift_name": r.shift_name or "-",
                    "punch_in": r.punch_in_time.strftime("%H:%M"),
                    "punch_out": r.punch_out_time.strftime("%H:%M") if r.punch_out_time else "-",
                    "status": r.status.value,
                    "worked_hours": _hhmm(minutes),
                    "late": "yes" if r.is_late else "",
                    "early_out": "yes" if r.is_early_out else "",
                    "regularized": "yes" if r.is_regularized else "",
                    "outside_geofence": "yes" if r.is_outside_geofence else "",
                }
            )

            s = per_user.setdefault(
                r.user_id,
                {"dates": set(), "late": 0, "early_out": 0, "regularized": 0, "minutes": 0},
            )
            s["dates"].add(r.work_date)
            s["late"] += int(r.is_late)
            s["early_out"] += int(r.is_early_out)
            s["regularized"] += int(r.is_regularized)
            s["minutes"] += minutes

        members = [
            u
            for u in self._users.list_by_org(int(org_id), include_inactive=False)
            if (user_id is None or u.user_id == int(user_id))
            and (not department or (u.department or "").lower() == department.lower())
        ]

        absence_end = min(end, today)
        summary: list[dict] = []
        for u in members:
            s = per_user.get(u.user_id, {"dates": set(), "late": 0, "early_out": 0, "regularized": 0, "minutes": 0})
            working = self._working_days(int(org_id), u, start, absence_end) if absence_end >= start else set()
            present = len(s["dates"])
            total_hours = round(s["minutes"] / 60, 2)
            summary.append(
                {
                    "user_id": u.user_id,
                    "full_name": u.full_name,
                    "department": u.department or "-",
                    "total_days": (end - start).days + 1,
                    "present": present,
                    "absent": len(working - s["dates"]),
                    "late": s["late"],
                    "early_out": s["early_out"],
                    "regularized": s["regularized"],
                    "total_hours": total_hours,
                    "average_hours": round(total_hours / present, 2) if present else 0.0,
                }
            )

        summary.sort(key=lambda x: x["total_hours"], reverse=True)
        return ReportData(rows=out_rows, summary=summary)

    def task_performance(
        self,
        *,
        current_role: Role,
        org_id: int,
        start: date,
        end: date,
        now: Optional[datetime] = None,
    ) -> list[dict]:
        """Per assignee: tasks created in the period, completed, currently overdue, completion rate (%)."""

        if not current_role.is_admin:
            raise AuthorizationError("Only administrators can view task reports")
        self._check_period(start, end)
        now = now or datetime.now()

        stats: dict[int, dict] = {}
        for task in self._tasks.list_for_org(int(org_id)):
            if not start <= task.created_at.date() <= end:
                continue
            for uid in task.assignee_ids:
                s = stats.setdefault(uid, {"assigned": 0, "completed": 0, "overdue": 0})
                s["assigned"] += 1
                if task.status == TaskStatus.COMPLETED:
                    s["completed"] += 1
                elif task.is_overdue(now):
                    s["overdue"] += 1

        names = {u.user_id: u.full_name for u in self._users.list_by_ids(list(stats))} if stats else {}
        out = [
            {
                "user_id": uid,
                "full_name": names.get(uid, "-"),
                "assigned": s["assigned"],
                "completed": s["completed"],
                "overdue": s["overdue"],
                "completion_rate": round(s["completed"] / s["assigned"] * 100, 1) if s["assigned"] else 0.0,
            }
            for uid, s in stats.items()
        ]
        out.sort(key=lambda x: (-x["completion_rate"], x["full_name"]))
        return out


def report_to_csv(data: ReportData) -> bytes:
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=REPORT_COLUMNS)
    writer.writeheader()
    for row in data.rows:
        writer.writerow(row)
    return out.getvalue().encode("utf-8-sig")


def report_to_excel(data: ReportData) -> bytes:
    """Two sheets: detail rows and the per-employee summary."""

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        pd.DataFrame(data.rows, columns=REPORT_COLUMNS).to_excel(writer, index=False, sheet_name="Attendance")
        pd.DataFrame(data.summary, columns=SUMMARY_COLUMNS).to_excel(writer, index=False, sheet_name="Summary")
    return output.getvalue()
