from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from .connection import DBConfig

logger = logging.getLogger(__name__)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_line_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _connect(target: DBConfig, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _run_script(db_config: dict, sql: str) -> None:
    target = DBConfig.from_mapping(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(_strip_line_comments(_strip_create_db_and_use(sql))):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_mapping(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    _run_script(db_config, Path(schema_path).read_text(encoding="utf-8"))
    logger.info("Applied schema %s", schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    _run_script(db_config, Path(seed_path).read_text(encoding="utf-8"))
    logger.info("Applied seed %s", seed_path)


def ensure_demo_users(db_config: dict) -> None:
    """Upsert the demo accounts and give every demo user the General shift."""

    target = DBConfig.from_mapping(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor(dictionary=True)

        cur.execute("SELECT org_id FROM organizations WHERE org_name=%s", ("Demo Clinic",))
        org = cur.fetchone()
        if not org:
            raise RuntimeError("Missing organizations row for 'Demo Clinic' (run seed.sql first)")
        org_id = int(org["org_id"])

        cur.execute("SELECT shift_id FROM shifts WHERE org_id=%s AND shift_name=%s", (org_id, "General"))
        shift = cur.fetchone()
        shift_id = int(shift["shift_id"]) if shift else None

        def upsert_user(full_name: str, username: str, password: str, role: str, department: str, phone: str) -> int:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT user_id FROM users WHERE username=%s", (username,))
            existing = cur.fetchone()
            if existing:
                cur.execute(
                    """
                    UPDATE users
                    SET full_name=%s, password_hash=%s, role=%s, department=%s, whatsapp_number=%s,
                        org_id=%s, is_active=1
                    WHERE username=%s
                    """,
                    (full_name, password_hash, role, department, phone, org_id, username),
                )
                return int(existing["user_id"])
            cur.execute(
                """
                INSERT INTO users (org_id, full_name, username, password_hash, role, department, whatsapp_number)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (org_id, full_name, username, password_hash, role, department, phone),
            )
            return int(cur.lastrowid)

        user_ids = [
            upsert_user("Clinic Admin", "admin", "admin123", "admin", "Management", "+919800000001"),
            upsert_user("Dr. Priya Shah", "priya", "staff123", "staff", "Medical", "+919800000002"),
            upsert_user("Ravi Kumar", "ravi", "staff123", "staff", "Nursing", "+919800000003"),
        ]

        if shift_id is not None:
            for user_id in user_ids:
                cur.execute("SELECT 1 AS x FROM employee_shifts WHERE user_id=%s AND effective_to IS NULL", (user_id,))
                if not cur.fetchone():
                    cur.execute(
                        "INSERT INTO employee_shifts (user_id, shift_id, effective_from) VALUES (%s, %s, CURDATE())",
                        (user_id, shift_id),
                    )

        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    target = DBConfig.from_mapping(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
