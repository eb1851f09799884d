from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.constants import DEFAULT_DEPARTMENTS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, as_float, db_cursor, dump_json, fetchall, fetchone, load_json
from .model import GeofenceSettings, Holiday, Organization
from .repository import OrganizationRepository

_ORG_COLUMNS = """
    org_id, org_name, departments, advisory_types, round_types, follow_up_types,
    whatsapp_enabled, auto_alerts_enabled, whatsapp_endpoint,
    location_latitude, location_longitude, location_address, geofence_settings
"""


def _row_to_org(r: dict) -> Organization:
    return Organization(
        org_id=int(r["org_id"]),
        org_name=r["org_name"],
        departments=tuple(load_json(r.get("departments"), list(DEFAULT_DEPARTMENTS))),
        whatsapp_enabled=as_bool(r.get("whatsapp_enabled"), True),
        auto_alerts_enabled=as_bool(r.get("auto_alerts_enabled"), True),
        whatsapp_endpoint=r.get("whatsapp_endpoint"),
        location_latitude=as_float(r.get("location_latitude")),
        location_longitude=as_float(r.get("location_longitude")),
        location_address=r.get("location_address"),
        geofence=GeofenceSettings.from_json(load_json(r.get("geofence_settings"), {})),
        advisory_types=tuple(load_json(r.get("advisory_types"), [])),
        round_types=tuple(load_json(r.get("round_types"), [])),
        follow_up_types=tuple(load_json(r.get("follow_up_types"), [])),
    )


class MySQLOrganizationRepository(OrganizationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, org_id: int) -> Optional[Organization]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_ORG_COLUMNS} FROM organizations WHERE org_id=%s", (int(org_id),))
            r = fetchone(cur)
            return _row_to_org(r) if r else None

    def update_whatsapp_settings(
        self,
        org_id: int,
        *,
        whatsapp_enabled: bool,
        auto_alerts_enabled: bool,
        whatsapp_endpoint: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE organizations
                SET whatsapp_enabled=%s, auto_alerts_enabled=%s, whatsapp_endpoint=%s
                WHERE org_id=%s
                """,
                (int(whatsapp_enabled), int(auto_alerts_enabled), whatsapp_endpoint, int(org_id)),
            )
            return cur.rowcount > 0

    def update_departments(self, org_id: int, departments: Sequence[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE organizations SET departments=%s WHERE org_id=%s",
                (dump_json(list(departments)), int(org_id)),
            )
            return cur.rowcount > 0

    def update_task_categories(
        self,
        org_id: int,
        *,
        advisory_types: Sequence[str],
        round_types: Sequence[str],
        follow_up_types: Sequence[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE organizations
                SET advisory_types=%s, round_types=%s, follow_up_types=%s
                WHERE org_id=%s
                """,
                (
                    dump_json(list(advisory_types)),
                    dump_json(list(round_types)),
                    dump_json(list(follow_up_types)),
                    int(org_id),
                ),
            )
            return cur.rowcount > 0

    def update_geofence(
        self,
        org_id: int,
        *,
        latitude: Optional[float],
        longitude: Optional[float],
        address: Optional[str],
        settings: GeofenceSettings,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE organizations
                SET location_latitude=%s, location_longitude=%s, location_address=%s, geofence_settings=%s
                WHERE org_id=%s
                """,
                (latitude, longitude, address, dump_json(settings.to_json()), int(org_id)),
            )
            return cur.rowcount > 0

    def list_holidays(self, org_id: int, *, start: Optional[date] = None, end: Optional[date] = None) -> Sequence[Holiday]:
        clauses = ["org_id=%s"]
        params: list[object] = [int(org_id)]
        if start is not None:
            clauses.append("holiday_date >= %s")
            params.append(start)
        if end is not None:
            clauses.append("holiday_date <= %s")
            params.append(end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT holiday_id, org_id, holiday_date, holiday_name
                FROM holidays
                WHERE {" AND ".join(clauses)}
                ORDER BY holiday_date
                """,
                tuple(params),
            )
            return [
                Holiday(
                    holiday_id=int(r["holiday_id"]),
                    org_id=int(r["org_id"]),
                    holiday_date=r["holiday_date"],
                    holiday_name=r["holiday_name"],
                )
                for r in fetchall(cur)
            ]

    def add_holiday(self, org_id: int, *, holiday_date: date, holiday_name: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO holidays(org_id, holiday_date, holiday_name) VALUES(%s,%s,%s)",
                (int(org_id), holiday_date, holiday_name),
            )
            return int(cur.lastrowid)

    def delete_holiday(self, org_id: int, holiday_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM holidays WHERE holiday_id=%s AND org_id=%s", (int(holiday_id), int(org_id)))
            return cur.rowcount > 0

    def is_holiday(self, org_id: int, on_date: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM holidays WHERE org_id=%s AND holiday_date=%s LIMIT 1",
                (int(org_id), on_date),
            )
            return fetchone(cur) is not None
