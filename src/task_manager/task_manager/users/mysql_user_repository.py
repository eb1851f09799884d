from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_bool, db_cursor, fetchall, fetchone, placeholders
from .model import User
from .repository import UserRepository

_USER_COLUMNS = "user_id, org_id, full_name, username, password_hash, role, whatsapp_number, department, is_active"


def _row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        org_id=int(row["org_id"]),
        full_name=row["full_name"],
        username=row["username"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        whatsapp_number=row.get("whatsapp_number"),
        department=row.get("department"),
        is_active=as_bool(row.get("is_active"), True),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE username=%s", (username,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def list_by_ids(self, user_ids: Sequence[int]) -> Sequence[User]:
        ids = [int(u) for u in user_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id IN ({placeholders(ids)})", tuple(ids))
            return [_row_to_user(r) for r in fetchall(cur)]

    def list_by_org(self, org_id: int, *, include_inactive: bool = True) -> Sequence[User]:
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE org_id=%s"
        if not include_inactive:
            sql += " AND is_active=1"
        sql += " ORDER BY full_name"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, (int(org_id),))
            return [_row_to_user(r) for r in fetchall(cur)]

    def find_org_admin(self, org_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users
                WHERE org_id=%s AND role IN ('admin', 'superadmin') AND is_active=1
                ORDER BY (role='admin') DESC, user_id
                LIMIT 1
                """,
                (int(org_id),),
            )
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def create_user(
        self,
        *,
        org_id: int,
        full_name: str,
        username: str,
        password_hash: str,
        role: Role,
        whatsapp_number: Optional[str],
        department: Optional[str],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(org_id, full_name, username, password_hash, role, whatsapp_number, department, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (int(org_id), full_name, username, password_hash, role.value, whatsapp_number, department),
            )
            return int(cur.lastrowid)

    def update_user(
        self,
        user_id: int,
        *,
        full_name: str,
        role: Role,
        whatsapp_number: Optional[str],
        department: Optional[str],
        is_active: bool,
        password_hash: Optional[str] = None,
    ) -> bool:
        sets = ["full_name=%s", "role=%s", "whatsapp_number=%s", "department=%s", "is_active=%s"]
        params: list[object] = [full_name, role.value, whatsapp_number, department, int(is_active)]
        if password_hash:
            sets.append("password_hash=%s")
            params.append(password_hash)
        params.append(int(user_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE users SET {', '.join(sets)} WHERE user_id=%s", tuple(params))
            return cur.rowcount > 0

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET is_active=%s WHERE user_id=%s", (int(is_active), int(user_id)))
            return cur.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0
