from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time, timedelta
from types import SimpleNamespace
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.task_manager.task_manager.attendance.model import AttendanceRecord, AttendanceReportRow
from src.task_manager.task_manager.container import wire_container
from src.task_manager.task_manager.core.enums import RequestStatus, Role
from src.task_manager.task_manager.core.exceptions import DeliveryError
from src.task_manager.task_manager.leaves.model import LeaveRequest, RegularizationRequest
from src.task_manager.task_manager.notifications.model import Notification, PendingWhatsApp
from src.task_manager.task_manager.organizations.model import Holiday, Organization
from src.task_manager.task_manager.shifts.model import EmployeeShift, Shift
from src.task_manager.task_manager.tasks.model import QualityControlEntry, RecurringTemplate, Task
from src.task_manager.task_manager.users.model import User

FIXED_NOW = datetime(2026, 3, 2, 10, 0, 0)  # a Monday

CLINIC_LAT = 19.0760
CLINIC_LON = 72.8777


class _Ids:
    def __init__(self, start: int = 1):
        self._next = start

    def __call__(self) -> int:
        value = self._next
        self._next += 1
        return value


class FakeUserRepo:
    def __init__(self):
        self.users: dict[int, User] = {}
        self._ids = _Ids(100)

    def add(self, user: User) -> User:
        self.users[user.user_id] = user
        return user

    def get_by_id(self, user_id):
        return self.users.get(int(user_id))

    def get_by_username(self, username):
        return next((u for u in self.users.values() if u.username == username), None)

    def list_by_ids(self, user_ids):
        return [self.users[i] for i in user_ids if i in self.users]

    def list_by_org(self, org_id, *, include_inactive=True):
        return [
            u
            for u in sorted(self.users.values(), key=lambda u: u.full_name)
            if u.org_id == int(org_id) and (include_inactive or u.is_active)
        ]

    def find_org_admin(self, org_id):
        admins = [u for u in self.users.values() if u.org_id == int(org_id) and u.is_active and u.role.is_admin]
        return min(admins, key=lambda u: u.user_id) if admins else None

    def create_user(self, *, org_id, full_name, username, password_hash, role, whatsapp_number, department):
        uid = self._ids()
        self.users[uid] = User(
            user_id=uid,
            org_id=org_id,
            full_name=full_name,
            username=username,
            password_hash=password_hash,
            role=role,
            whatsapp_number=whatsapp_number,
            department=department,
        )
        return uid

    def update_user(self, user_id, *, full_name, role, whatsapp_number, department, is_active, password_hash=None):
        user = self.users.get(int(user_id))
        if not user:
            return False
        self.users[user.user_id] = replace(
            user,
            full_name=full_name,
            role=role,
            whatsapp_number=whatsapp_number,
            department=department,
            is_active=is_active,
            password_hash=password_hash or user.password_hash,
        )
        return True

    def set_active(self, user_id, *, is_active):
        user = self.users.get(int(user_id))
        if not user:
            return False
        self.users[user.user_id] = replace(user, is_active=is_active)
        return True

    def delete_by_id(self, user_id):
        return self.users.pop(int(user_id), None) is not None


class FakeOrganizationRepo:
    def __init__(self):
        self.orgs: dict[int, Organization] = {}
        self.holidays: dict[int, Holiday] = {}
        self._ids = _Ids()

    def add(self, org: Organization) -> Organization:
        self.orgs[org.org_id] = org
        return org

    def _update(self, org_id, **changes):
        org = self.orgs.get(int(org_id))
        if not org:
            return False
        self.orgs[org.org_id] = replace(org, **changes)
        return True

    def get_by_id(self, org_id):
        return self.orgs.get(int(org_id))

    def update_whatsapp_settings(self, org_id, *, whatsapp_enabled, auto_alerts_enabled, whatsapp_endpoint):
        return self._update(
            org_id,
            whatsapp_enabled=whatsapp_enabled,
            auto_alerts_enabled=auto_alerts_enabled,
            whatsapp_endpoint=whatsapp_endpoint,
        )

    def update_departments(self, org_id, departments):
        return self._update(org_id, departments=tuple(departments))

    def update_task_categories(self, org_id, *, advisory_types, round_types, follow_up_types):
        return self._update(
            org_id,
            advisory_types=tuple(advisory_types),
            round_types=tuple(round_types),
            follow_up_types=tuple(follow_up_types),
        )

    def update_geofence(self, org_id, *, latitude, longitude, address, settings):
        return self._update(
            org_id,
            location_latitude=latitude,
            location_longitude=longitude,
            location_address=address,
            geofence=settings,
        )

    def list_holidays(self, org_id, *, start=None, end=None):
        return sorted(
            (
                h
                for h in self.holidays.values()
                if h.org_id == int(org_id)
                and (start is None or h.holiday_date >= start)
                and (end is None or h.holiday_date <= end)
            ),
            key=lambda h: h.holiday_date,
        )

    def add_holiday(self, org_id, *, holiday_date, holiday_name):
        hid = self._ids()
        self.holidays[hid] = Holiday(holiday_id=hid, org_id=int(org_id), holiday_date=holiday_date, holiday_name=holiday_name)
        return hid

    def delete_holiday(self, org_id, holiday_id):
        h = self.holidays.get(int(holiday_id))
        if not h or h.org_id != int(org_id):
            return False
        del self.holidays[h.holiday_id]
        return True

    def is_holiday(self, org_id, on_date):
        return any(h.org_id == int(org_id) and h.holiday_date == on_date for h in self.holidays.values())


class FakeShiftRepo:
    def __init__(self, users: FakeUserRepo):
        self._users = users
        self.shifts: dict[int, Shift] = {}
        self.assignments: dict[int, EmployeeShift] = {}
        self._shift_ids = _Ids(10)
        self._assignment_ids = _Ids()

    def add(self, shift: Shift) -> Shift:
        self.shifts[shift.shift_id] = shift
        return shift

    def list_for_org(self, org_id, *, active_only=True):
        return [s for s in self.shifts.values() if s.org_id == int(org_id) and (s.is_active or not active_only)]

    def get_by_id(self, shift_id):
        return self.shifts.get(int(shift_id))

    def create_shift(self, *, org_id, **fields):
        sid = self._shift_ids()
        fields["weekly_off_days"] = tuple(fields["weekly_off_days"])
        self.shifts[sid] = Shift(shift_id=sid, org_id=org_id, **fields)
        return sid

    def update_shift(self, shift_id, **fields):
        shift = self.shifts.get(int(shift_id))
        if not shift:
            return False
        fields["weekly_off_days"] = tuple(fields["weekly_off_days"])
        self.shifts[shift.shift_id] = replace(shift, **fields)
        return True

    def set_active(self, shift_id, *, is_active):
        shift = self.shifts.get(int(shift_id))
        if not shift:
            return False
        self.shifts[shift.shift_id] = replace(shift, is_active=is_active)
        return True

    def list_assignments(self, user_id):
        return sorted(
            (a for a in self.assignments.values() if a.user_id == int(user_id)),
            key=lambda a: a.effective_from,
            reverse=True,
        )

    def list_org_assignments(self, org_id, *, on_date):
        out = []
        for a in self.assignments.values():
            user = self._users.get_by_id(a.user_id)
            if not user or user.org_id != int(org_id) or not a.covers(on_date):
                continue
            shift = self.shifts[a.shift_id]
            out.append(
                {
                    "assignment_id": a.assignment_id,
                    "user_id": a.user_id,
                    "full_name": user.full_name,
                    "shift_id": a.shift_id,
                    "shift": shift.shift_name,
                    "effective_from": a.effective_from.strftime("%Y-%m-%d"),
                    "effective_to": a.effective_to.strftime("%Y-%m-%d") if a.effective_to else None,
                }
            )
        return sorted(out, key=lambda r: r["full_name"])

    def close_open_assignments(self, user_id, *, effective_to):
        closed = 0
        for a in list(self.assignments.values()):
            if a.user_id == int(user_id) and (a.effective_to is None or a.effective_to > effective_to):
                self.assignments[a.assignment_id] = replace(a, effective_to=effective_to)
                closed += 1
        return closed

    def create_assignment(self, *, user_id, shift_id, effective_from, effective_to, assigned_by):
        aid = self._assignment_ids()
        self.assignments[aid] = EmployeeShift(
            assignment_id=aid,
            user_id=user_id,
            shift_id=shift_id,
            effective_from=effective_from,
            effective_to=effective_to,
            assigned_by=assigned_by,
        )
        return aid

    def get_assignment_for_date(self, user_id, on_date):
        covering = [a for a in self.assignments.values() if a.user_id == int(user_id) and a.covers(on_date)]
        return max(covering, key=lambda a: a.effective_from) if covering else None


class FakeAttendanceRepo:
    def __init__(self, users: FakeUserRepo, shifts: FakeShiftRepo):
        self._users = users
        self._shifts = shifts
        self.records: dict[int, AttendanceRecord] = {}
        self._ids = _Ids()

    def add(self, record: AttendanceRecord) -> AttendanceRecord:
        self.records[record.attendance_id] = record
        return record

    def get_by_id(self, attendance_id):
        return self.records.get(int(attendance_id))

    def get_for_user_and_date(self, user_id, work_date):
        return next(
            (r for r in self.records.values() if r.user_id == int(user_id) and r.work_date == work_date),
            None,
        )

    def get_open_record(self, user_id, *, since):
        open_records = [
            r
            for r in self.records.values()
            if r.user_id == int(user_id) and r.punch_out_time is None and r.work_date >= since
        ]
        return max(open_records, key=lambda r: r.punch_in_time) if open_records else None

    def get_recent_for_user(self, user_id, limit):
        rows = sorted(
            (r for r in self.records.values() if r.user_id == int(user_id)),
            key=lambda r: r.work_date,
            reverse=True,
        )
        return rows[:limit]

    def list_open_for_org(self, org_id):
        return sorted(
            (r for r in self.records.values() if r.org_id == int(org_id) and r.punch_out_time is None),
            key=lambda r: r.punch_in_time,
        )

    def list_for_org(self, org_id, *, start_date, end_date, user_id=None, outside_geofence_only=False):
        return [
            r
            for r in sorted(self.records.values(), key=lambda r: (r.work_date, r.user_id))
            if r.org_id == int(org_id)
            and start_date <= r.work_date <= end_date
            and (user_id is None or r.user_id == int(user_id))
            and (not outside_geofence_only or r.is_outside_geofence)
        ]

    def create_punch_in(
        self,
        *,
        user_id,
        org_id,
        work_date,
        shift_id,
        punch_in_time,
        location,
        distance,
        is_outside_geofence,
        status,
        is_late,
        is_weekend,
        is_holiday,
    ):
        rid = self._ids()
        self.records[rid] = AttendanceRecord(
            attendance_id=rid,
            user_id=user_id,
            org_id=org_id,
            work_date=work_date,
            punch_in_time=punch_in_time,
            shift_id=shift_id,
            status=status,
            punch_in_latitude=location.latitude,
            punch_in_longitude=location.longitude,
            punch_in_address=location.address,
            punch_in_distance=distance,
            device_info=location.device_info,
            is_outside_geofence=is_outside_geofence,
            is_late=is_late,
            is_weekend=is_weekend,
            is_holiday=is_holiday,
        )
        return rid

    def update_punch_out(
        self,
        *,
        attendance_id,
        punch_out_time,
        location,
        distance,
        is_outside_geofence,
        status,
        is_early_out,
        is_half_day,
        total_hours,
        break_hours,
        effective_hours,
    ):
        rec = self.records.get(int(attendance_id))
        if not rec or rec.punch_out_time is not None:
            return False
        self.records[rec.attendance_id] = replace(
            rec,
            punch_out_time=punch_out_time,
            punch_out_latitude=location.latitude,
            punch_out_longitude=location.longitude,
            punch_out_address=location.address,
            punch_out_distance=distance,
            is_outside_geofence=is_outside_geofence,
            status=status,
            is_early_out=is_early_out,
            is_half_day=is_half_day,
            total_hours=total_hours,
            break_hours=break_hours,
            effective_hours=effective_hours,
        )
        return True

    def set_geofence_override(self, *, attendance_id, override_by, reason, at):
        rec = self.records[int(attendance_id)]
        self.records[rec.attendance_id] = replace(
            rec, geofence_override_by=override_by, geofence_override_reason=reason, geofence_override_at=at
        )
        return True

    def close_open_record(self, *, attendance_id, punch_out_time, address, regularized_by, reason, at):
        rec = self.records.get(int(attendance_id))
        if not rec or rec.punch_out_time is not None:
            return False
        self.records[rec.attendance_id] = replace(
            rec,
            punch_out_time=punch_out_time,
            punch_out_address=address,
            is_regularized=True,
            regularized_by=regularized_by,
            regularized_reason=reason,
            regularized_at=at,
        )
        return True

    def apply_regularization(
        self, *, attendance_id, punch_in_time, punch_out_time, total_hours, effective_hours, regularized_by, reason, at
    ):
        rec = self.records.get(int(attendance_id))
        if not rec:
            return False
        self.records[rec.attendance_id] = replace(
            rec,
            punch_in_time=punch_in_time,
            punch_out_time=punch_out_time,
            total_hours=total_hours,
            effective_hours=effective_hours,
            is_regularized=True,
            regularized_by=regularized_by,
            regularized_reason=reason,
            regularized_at=at,
        )
        return True

    def get_report_rows(self, *, org_id, start_date, end_date, department=None, user_id=None):
        rows = []
        for r in self.list_for_org(org_id, start_date=start_date, end_date=end_date, user_id=user_id):
            user = self._users.get_by_id(r.user_id)
            if department and (user.department or "").lower() != department.lower():
                continue
            shift = self._shifts.get_by_id(r.shift_id) if r.shift_id else None
            rows.append(
                AttendanceReportRow(
                    user_id=r.user_id,
                    full_name=user.full_name,
                    username=user.username,
                    department=user.department,
                    shift_name=shift.shift_name if shift else None,
                    break_minutes=shift.break_minutes if shift else 0,
                    work_date=r.work_date,
                    punch_in_time=r.punch_in_time,
                    punch_out_time=r.punch_out_time,
                    status=r.status,
                    is_late=r.is_late,
                    is_early_out=r.is_early_out,
                    is_regularized=r.is_regularized,
                    is_outside_geofence=r.is_outside_geofence,
                )
            )
        return rows


class FakeTaskRepo:
    def __init__(self):
        self.tasks: dict[int, Task] = {}
        self.quality: dict[int, QualityControlEntry] = {}
        self._ids = _Ids()
        self._quality_ids = _Ids()

    def add(self, task: Task) -> Task:
        self.tasks[task.task_id] = task
        return task

    def get_by_id(self, task_id):
        return self.tasks.get(int(task_id))

    def list_for_org(self, org_id, *, involving_user_id=None):
        return [
            t
            for t in self.tasks.values()
            if t.org_id == int(org_id)
            and (
                involving_user_id is None
                or t.created_by == int(involving_user_id)
                or int(involving_user_id) in t.assignee_ids
            )
        ]

    def create_task(self, *, org_id, task_type, title, priority, status, created_by, created_at, assignee_ids, **extra):
        tid = self._ids()
        self.tasks[tid] = Task(
            task_id=tid,
            org_id=org_id,
            task_type=task_type,
            title=title,
            priority=priority,
            status=status,
            created_by=created_by,
            created_at=created_at,
            assignee_ids=tuple(assignee_ids),
            **extra,
        )
        return tid

    def update_task(self, task_id, *, changes, updated_at):
        task = self.tasks.get(int(task_id))
        if not task:
            return False
        self.tasks[task.task_id] = replace(task, updated_at=updated_at, **changes)
        return True

    def set_assignees(self, task_id, user_ids):
        task = self.tasks[int(task_id)]
        self.tasks[task.task_id] = replace(task, assignee_ids=tuple(user_ids))

    def set_status(self, task_id, *, status, completed_at, updated_at):
        task = self.tasks.get(int(task_id))
        if not task:
            return False
        self.tasks[task.task_id] = replace(task, status=status, completed_at=completed_at, updated_at=updated_at)
        return True

    def delete_many(self, org_id, task_ids):
        deleted = 0
        for tid in task_ids:
            task = self.tasks.get(int(tid))
            if task and task.org_id == int(org_id):
                del self.tasks[task.task_id]
                deleted += 1
        return deleted

    def list_overdue(self, *, now):
        return [t for t in self.tasks.values() if t.is_overdue(now)]

    def record_overdue_alert(self, task_id, *, at):
        task = self.tasks[int(task_id)]
        self.tasks[task.task_id] = replace(
            task, overdue_alert_count=task.overdue_alert_count + 1, last_overdue_alert_at=at
        )
        return True

    def count_for_template(self, template_id):
        return sum(1 for t in self.tasks.values() if t.recurring_template_id == int(template_id))

    def add_quality_entry(self, *, task_id, user_id, entry_date, description, remark=None):
        eid = self._quality_ids()
        self.quality[eid] = QualityControlEntry(
            entry_id=eid, task_id=task_id, user_id=user_id, entry_date=entry_date, description=description, remark=remark
        )
        return eid

    def list_quality_entries(self, task_id):
        return [e for e in self.quality.values() if e.task_id == int(task_id)]


class FakeTemplateRepo:
    def __init__(self):
        self.templates: dict[int, RecurringTemplate] = {}
        self._ids = _Ids()

    def add(self, template: RecurringTemplate) -> RecurringTemplate:
        self.templates[template.template_id] = template
        return template

    def get_by_id(self, template_id):
        return self.templates.get(int(template_id))

    def list_for_org(self, org_id):
        return [t for t in self.templates.values() if t.org_id == int(org_id)]

    def list_active(self):
        return [t for t in self.templates.values() if t.is_active]

    def create_template(self, *, org_id, created_by, assignee_ids, **fields):
        tid = self._ids()
        self.templates[tid] = RecurringTemplate(
            template_id=tid, org_id=org_id, created_by=created_by, assignee_ids=tuple(assignee_ids), **fields
        )
        return tid

    def update_template(self, template_id, *, assignee_ids, **fields):
        t = self.templates.get(int(template_id))
        if not t:
            return False
        self.templates[t.template_id] = replace(t, assignee_ids=tuple(assignee_ids), **fields)
        return True

    def set_active(self, template_id, *, is_active):
        t = self.templates[int(template_id)]
        self.templates[t.template_id] = replace(t, is_active=is_active)
        return True

    def mark_generated(self, template_id, *, generated_for):
        t = self.templates[int(template_id)]
        self.templates[t.template_id] = replace(t, last_generated_date=generated_for)
        return True

    def delete(self, template_id):
        return self.templates.pop(int(template_id), None) is not None


class FakeLeaveRepo:
    def __init__(self, users: FakeUserRepo, attendance: FakeAttendanceRepo):
        self._users = users
        self._attendance = attendance
        self.leaves: dict[int, LeaveRequest] = {}
        self.regularizations: dict[int, RegularizationRequest] = {}
        self._ids = _Ids()
        self._reg_ids = _Ids()

    def create_leave(self, *, user_id, org_id, leave_type, start_date, end_date, reason, is_emergency, is_post_facto):
        rid = self._ids()
        self.leaves[rid] = LeaveRequest(
            request_id=rid,
            user_id=user_id,
            org_id=org_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            status=RequestStatus.PENDING,
            created_at=FIXED_NOW,
            is_emergency=is_emergency,
            is_post_facto=is_post_facto,
        )
        return rid

    def set_approval_task(self, request_id, task_id):
        req = self.leaves[int(request_id)]
        self.leaves[req.request_id] = replace(req, approval_task_id=task_id)
        return True

    def get_leave(self, request_id):
        return self.leaves.get(int(request_id))

    def list_leaves(self, *, org_id=None, user_id=None, status=None, limit=200):
        rows = [
            {
                "request_id": r.request_id,
                "user_id": r.user_id,
                "leave_type": r.leave_type.value,
                "start_date": r.start_date.strftime("%Y-%m-%d"),
                "status": r.status.value,
            }
            for r in self.leaves.values()
            if (org_id is None or r.org_id == int(org_id))
            and (user_id is None or r.user_id == int(user_id))
            and (status is None or r.status == status)
        ]
        return rows[:limit]

    def decide_leave(self, *, request_id, status, decided_by, decided_at, admin_note=None):
        req = self.leaves.get(int(request_id))
        if not req or req.status != RequestStatus.PENDING:
            return False
        self.leaves[req.request_id] = replace(
            req, status=status, decided_by=decided_by, decided_at=decided_at, admin_note=admin_note
        )
        return True

    def create_regularization(self, *, attendance_id, user_id, requested_punch_in, requested_punch_out, reason):
        rid = self._reg_ids()
        self.regularizations[rid] = RegularizationRequest(
            request_id=rid,
            attendance_id=attendance_id,
            user_id=user_id,
            reason=reason,
            status=RequestStatus.PENDING,
            created_at=FIXED_NOW,
            requested_punch_in=requested_punch_in,
            requested_punch_out=requested_punch_out,
        )
        return rid

    def get_regularization(self, request_id):
        return self.regularizations.get(int(request_id))

    def has_pending_regularization(self, attendance_id):
        return any(
            r.attendance_id == int(attendance_id) and r.status == RequestStatus.PENDING
            for r in self.regularizations.values()
        )

    def list_regularizations(self, *, org_id=None, user_id=None, status=None, limit=200):
        rows = []
        for r in self.regularizations.values():
            user = self._users.get_by_id(r.user_id)
            if org_id is not None and (not user or user.org_id != int(org_id)):
                continue
            if user_id is not None and r.user_id != int(user_id):
                continue
            if status is not None and r.status != status:
                continue
            rows.append({"request_id": r.request_id, "attendance_id": r.attendance_id, "status": r.status.value})
        return rows[:limit]

    def decide_regularization(self, *, request_id, status, decided_by, decided_at, admin_note=None):
        req = self.regularizations.get(int(request_id))
        if not req or req.status != RequestStatus.PENDING:
            return False
        self.regularizations[req.request_id] = replace(
            req, status=status, decided_by=decided_by, decided_at=decided_at, admin_note=admin_note
        )
        return True


class FakeNotificationRepo:
    def __init__(self, users: FakeUserRepo, organizations: FakeOrganizationRepo, tasks: FakeTaskRepo):
        self._users = users
        self._organizations = organizations
        self._tasks = tasks
        self.items: dict[int, Notification] = {}
        self._ids = _Ids()

    def create(
        self,
        *,
        user_id,
        notification_type,
        title,
        message,
        task_id=None,
        whatsapp_number=None,
        whatsapp_message=None,
        scheduled_for=None,
    ):
        nid = self._ids()
        self.items[nid] = Notification(
            notification_id=nid,
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            created_at=FIXED_NOW + timedelta(seconds=nid),
            task_id=task_id,
            whatsapp_number=whatsapp_number,
            whatsapp_message=whatsapp_message,
            scheduled_for=scheduled_for,
        )
        return nid

    def of_type(self, notification_type):
        return [n for n in self.items.values() if n.notification_type == notification_type]

    def list_for_user(self, user_id, *, unread_only=False, limit=50):
        rows = [
            n
            for n in sorted(self.items.values(), key=lambda n: n.created_at, reverse=True)
            if n.user_id == int(user_id) and (not unread_only or not n.is_read)
        ]
        return rows[:limit]

    def mark_read(self, user_id, notification_id):
        n = self.items.get(int(notification_id))
        if not n or n.user_id != int(user_id):
            return False
        self.items[n.notification_id] = replace(n, is_read=True)
        return True

    def mark_all_read(self, user_id):
        count = 0
        for n in list(self.items.values()):
            if n.user_id == int(user_id) and not n.is_read:
                self.items[n.notification_id] = replace(n, is_read=True)
                count += 1
        return count

    def unread_count(self, user_id):
        return sum(1 for n in self.items.values() if n.user_id == int(user_id) and not n.is_read)

    def _due(self, now, types):
        for n in sorted(self.items.values(), key=lambda n: (n.created_at, n.notification_id)):
            if n.whatsapp_sent or not n.whatsapp_number or not n.whatsapp_message:
                continue
            if n.notification_type not in types:
                continue
            if n.scheduled_for is not None and n.scheduled_for > now:
                continue
            user = self._users.get_by_id(n.user_id)
            org = self._organizations.get_by_id(user.org_id) if user else None
            yield n, user, org

    def list_pending_whatsapp(self, *, now, types, limit, org_id=None, deliverable_only=False):
        out = []
        for n, user, org in self._due(now, types):
            if org_id is not None and (not org or org.org_id != int(org_id)):
                continue
            if deliverable_only and not (org and org.whatsapp_enabled):
                continue
            task = self._tasks.get_by_id(n.task_id) if n.task_id else None
            out.append(
                PendingWhatsApp(
                    notification_id=n.notification_id,
                    user_id=n.user_id,
                    notification_type=n.notification_type,
                    title=n.title,
                    whatsapp_number=n.whatsapp_number,
                    whatsapp_message=n.whatsapp_message,
                    created_at=n.created_at,
                    org_id=org.org_id if org else None,
                    whatsapp_enabled=org.whatsapp_enabled if org else None,
                    whatsapp_endpoint=org.whatsapp_endpoint if org else None,
                    full_name=user.full_name if user else None,
                    task_id=n.task_id,
                    task_title=task.title if task else None,
                    task_priority=task.priority.value if task else None,
                    task_due_date=task.due_date if task else None,
                )
            )
        return out[:limit]

    def count_held_whatsapp(self, *, now, types):
        return sum(1 for _, _, org in self._due(now, types) if not (org and org.whatsapp_enabled))

    def mark_whatsapp_sent(self, notification_id, *, message_id, at):
        n = self.items[int(notification_id)]
        self.items[n.notification_id] = replace(
            n, whatsapp_sent=True, whatsapp_sent_at=at, whatsapp_message_id=message_id
        )
        return True

    def mark_whatsapp_failed(self, notification_id, *, error, at):
        n = self.items[int(notification_id)]
        self.items[n.notification_id] = replace(n, whatsapp_sent=True, whatsapp_error=error, whatsapp_sent_at=at)
        return True

    def whatsapp_counts(self, org_id):
        rows = []
        for n in self.items.values():
            user = self._users.get_by_id(n.user_id)
            if n.whatsapp_number and user and user.org_id == int(org_id):
                rows.append(n)
        sent = sum(1 for n in rows if n.whatsapp_sent and n.whatsapp_error is None)
        failed = sum(1 for n in rows if n.whatsapp_sent and n.whatsapp_error is not None)
        return {"total": len(rows), "sent": sent, "failed": failed, "pending": len(rows) - sent - failed}


class FakeWhatsAppClient:
    """Records sends; numbers listed in ``fail_numbers`` raise DeliveryError."""

    def __init__(self, fail_numbers=()):
        self.sent: list[dict] = []
        self.fail_numbers = set(fail_numbers)

    @property
    def configured(self) -> bool:
        return True

    def send(self, *, phone_number, message, organization_id=None, notification_id=None, title=None, endpoint=None):
        if phone_number in self.fail_numbers:
            raise DeliveryError("Gateway returned HTTP 500: boom", status_code=500)
        self.sent.append(
            {
                "phone_number": phone_number,
                "message": message,
                "organization_id": organization_id,
                "notification_id": notification_id,
                "endpoint": endpoint,
            }
        )
        return f"wa-{len(self.sent)}"


def make_user(user_id: int, org_id: int, full_name: str, username: str, role: Role = Role.STAFF, **extra) -> User:
    return User(
        user_id=user_id,
        org_id=org_id,
        full_name=full_name,
        username=username,
        password_hash=generate_password_hash("secret123"),
        role=role,
        **extra,
    )


def general_shift(**overrides) -> Shift:
    fields = dict(
        shift_id=1,
        org_id=1,
        shift_name="General",
        start_time=time(9, 0),
        end_time=time(18, 0),
        break_minutes=60,
        late_threshold_minutes=15,
        early_out_threshold_minutes=15,
        weekly_off_days=("sunday",),
    )
    fields.update(overrides)
    return Shift(**fields)


def build_world(settings: Optional[dict] = None, client: Optional[FakeWhatsAppClient] = None) -> SimpleNamespace:
    users = FakeUserRepo()
    organizations = FakeOrganizationRepo()
    shifts = FakeShiftRepo(users)
    attendance = FakeAttendanceRepo(users, shifts)
    tasks = FakeTaskRepo()
    templates = FakeTemplateRepo()
    leaves = FakeLeaveRepo(users, attendance)
    notifications = FakeNotificationRepo(users, organizations, tasks)
    client = client or FakeWhatsAppClient()

    organizations.add(
        Organization(
            org_id=1,
            org_name="Demo Clinic",
            location_latitude=CLINIC_LAT,
            location_longitude=CLINIC_LON,
            location_address="Main Road, Mumbai",
        )
    )
    organizations.add(Organization(org_id=2, org_name="Other Clinic"))

    admin = users.add(
        make_user(1, 1, "Asha Admin", "admin", Role.ADMIN, whatsapp_number="+919800000001", department="Management")
    )
    priya = users.add(make_user(2, 1, "Priya Shah", "priya", whatsapp_number="+919800000002", department="Medical"))
    ravi = users.add(make_user(3, 1, "Ravi Kumar", "ravi", department="Nursing"))
    outsider = users.add(make_user(4, 2, "Omar Other", "omar", whatsapp_number="+919800000004"))

    shifts.add(general_shift())
    for uid in (1, 2, 3):
        shifts.create_assignment(
            user_id=uid, shift_id=1, effective_from=date(2026, 1, 1), effective_to=None, assigned_by=1
        )

    merged = {"WHATSAPP_SEND_DELAY_SECONDS": 0}
    merged.update(settings or {})
    container = wire_container(
        users_repo=users,
        organizations_repo=organizations,
        shifts_repo=shifts,
        attendance_repo=attendance,
        leaves_repo=leaves,
        tasks_repo=tasks,
        templates_repo=templates,
        notifications_repo=notifications,
        whatsapp_client=client,
        settings=merged,
    )

    return SimpleNamespace(
        users=users,
        organizations=organizations,
        shifts=shifts,
        attendance=attendance,
        tasks=tasks,
        templates=templates,
        leaves=leaves,
        notifications=notifications,
        client=client,
        container=container,
        admin=admin,
        priya=priya,
        ravi=ravi,
        outsider=outsider,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def world() -> SimpleNamespace:
    return build_world()
