from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .core.constants import (
    DEFAULT_COUNTRY_CODE,
    WHATSAPP_BATCH_LIMIT,
    WHATSAPP_SEND_DELAY_SECONDS,
    WHATSAPP_TIMEOUT_SECONDS,
)
from .database.connection import DBConfig, DatabaseConnection
from .geofence.service import GeofenceService, GeofenceValidator
from .leaves.mysql_leave_repository import MySQLLeaveRepository
from .leaves.repository import LeaveRepository
from .leaves.service import LeaveService
from .notifications.dispatcher import WhatsAppDispatcher
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.overdue import OverdueAlertService
from .notifications.repository import NotificationRepository
from .notifications.service import NotificationService
from .notifications.whatsapp_client import WhatsAppClient
from .organizations.mysql_organization_repository import MySQLOrganizationRepository
from .organizations.repository import OrganizationRepository
from .organizations.service import OrganizationService
from .reports.service import ReportService
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .shifts.repository import ShiftRepository
from .shifts.service import ShiftService
from .tasks.mysql_task_repository import MySQLTaskRepository
from .tasks.mysql_template_repository import MySQLRecurringTemplateRepository
from .tasks.recurring import RecurringTaskService
from .tasks.repository import RecurringTemplateRepository, TaskRepository
from .tasks.service import TaskService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    organizations_repo: OrganizationRepository
    shifts_repo: ShiftRepository
    attendance_repo: AttendanceRepository
    leaves_repo: LeaveRepository
    tasks_repo: TaskRepository
    templates_repo: RecurringTemplateRepository
    notifications_repo: NotificationRepository

    whatsapp_client: WhatsAppClient

    auth_service: AuthService
    user_service: UserService
    organization_service: OrganizationService
    geofence_service: GeofenceService
    shift_service: ShiftService
    attendance_service: AttendanceService
    notification_service: NotificationService
    task_service: TaskService
    recurring_service: RecurringTaskService
    leave_service: LeaveService
    report_service: ReportService
    whatsapp_dispatcher: WhatsAppDispatcher
    overdue_alert_service: OverdueAlertService

    whatsapp_batch_limit: int = WHATSAPP_BATCH_LIMIT


def wire_container(
    *,
    users_repo: UserRepository,
    organizations_repo: OrganizationRepository,
    shifts_repo: ShiftRepository,
    attendance_repo: AttendanceRepository,
    leaves_repo: LeaveRepository,
    tasks_repo: TaskRepository,
    templates_repo: RecurringTemplateRepository,
    notifications_repo: NotificationRepository,
    whatsapp_client: WhatsAppClient,
    settings: Optional[Mapping[str, Any]] = None,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build every service on top of the given repositories (MySQL in the app, fakes in tests)."""

    settings = settings or {}
    geofence_validator = GeofenceValidator()

    notification_service = NotificationService(notifications_repo, organizations_repo, client=whatsapp_client)
    attendance_service = AttendanceService(
        attendance_repo,
        users_repo,
        shifts_repo,
        organizations_repo,
        geofence=geofence_validator,
        strategy_factory=AttendanceStrategyFactory(grace_minutes=int(settings.get("LATE_GRACE_MINUTES", 0))),
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        organizations_repo=organizations_repo,
        shifts_repo=shifts_repo,
        attendance_repo=attendance_repo,
        leaves_repo=leaves_repo,
        tasks_repo=tasks_repo,
        templates_repo=templates_repo,
        notifications_repo=notifications_repo,
        whatsapp_client=whatsapp_client,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo, organizations_repo),
        organization_service=OrganizationService(organizations_repo),
        geofence_service=GeofenceService(organizations_repo, validator=geofence_validator),
        shift_service=ShiftService(shifts_repo, users_repo),
        attendance_service=attendance_service,
        notification_service=notification_service,
        task_service=TaskService(tasks_repo, users_repo, notification_service),
        recurring_service=RecurringTaskService(templates_repo, tasks_repo, users_repo),
        leave_service=LeaveService(leaves_repo, users_repo, tasks_repo, attendance_repo, notification_service),
        report_service=ReportService(attendance_repo, users_repo, shifts_repo, organizations_repo, tasks_repo),
        whatsapp_dispatcher=WhatsAppDispatcher(
            notifications_repo,
            whatsapp_client,
            send_delay_seconds=float(settings.get("WHATSAPP_SEND_DELAY_SECONDS", WHATSAPP_SEND_DELAY_SECONDS)),
            country_code=str(settings.get("DEFAULT_COUNTRY_CODE", DEFAULT_COUNTRY_CODE)),
        ),
        overdue_alert_service=OverdueAlertService(tasks_repo, users_repo, notification_service),
        whatsapp_batch_limit=int(settings.get("WHATSAPP_BATCH_LIMIT", WHATSAPP_BATCH_LIMIT)),
    )


def build_container(*, db_config: dict, settings: Optional[Mapping[str, Any]] = None) -> Container:
    settings = settings or {}
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    client = WhatsAppClient(
        str(settings.get("WHATSAPP_API_URL", "")),
        str(settings.get("WHATSAPP_API_KEY", "")),
        timeout=float(settings.get("WHATSAPP_TIMEOUT_SECONDS", WHATSAPP_TIMEOUT_SECONDS)),
    )

    return wire_container(
        users_repo=MySQLUserRepository(conn),
        organizations_repo=MySQLOrganizationRepository(conn),
        shifts_repo=MySQLShiftRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        leaves_repo=MySQLLeaveRepository(conn),
        tasks_repo=MySQLTaskRepository(conn),
        templates_repo=MySQLRecurringTemplateRepository(conn),
        notifications_repo=MySQLNotificationRepository(conn),
        whatsapp_client=client,
        settings=settings,
        conn=conn,
    )
