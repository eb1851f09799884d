"""Load the Demo Clinic (organization, shifts, holidays) and its demo accounts.

Usage: python scripts/seed_db.py [--seed PATH] [--skip-demo-users]
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.task_manager.task_manager.database.bootstrap import apply_seed_sql, ensure_demo_users
from src.task_manager.task_manager.database.connection import DatabaseConnection, DBConfig
from src.task_manager.task_manager.database.mysql_base import db_cursor, fetchone

DEMO_LOGINS = ("admin/admin123", "priya/staff123", "ravi/staff123")


def clinic_summary(db_config: dict, org_name: str = "Demo Clinic") -> dict:
    conn_factory = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
    with db_cursor(conn_factory) as (_, cur):
        cur.execute(
            """
            SELECT o.org_id,
                   (SELECT COUNT(*) FROM users u WHERE u.org_id=o.org_id AND u.is_active=1) AS members,
                   (SELECT COUNT(*) FROM shifts s WHERE s.org_id=o.org_id AND s.is_active=1) AS shifts,
                   (SELECT COUNT(*) FROM holidays h WHERE h.org_id=o.org_id) AS holidays
            FROM organizations o
            WHERE o.org_name=%s
            """,
            (org_name,),
        )
        row = fetchone(cur)
    if not row:
        raise RuntimeError(f"Seed did not create organization {org_name!r}")
    return {key: int(value) for key, value in row.items()}


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the Demo Clinic")
    parser.add_argument("--seed", type=Path, default=REPO_ROOT / "database" / "seed.sql")
    parser.add_argument(
        "--skip-demo-users", action="store_true", help="load seed.sql only, without upserting demo accounts"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    args = parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    apply_seed_sql(db_config, seed_path=args.seed)
    if not args.skip_demo_users:
        ensure_demo_users(db_config)

    summary = clinic_summary(db_config)
    print(
        f"OK: Demo Clinic (org {summary['org_id']}) has {summary['members']} active members, "
        f"{summary['shifts']} shifts, {summary['holidays']} holidays"
    )
    if not args.skip_demo_users:
        print("Demo logins: " + ", ".join(DEMO_LOGINS))
    return 0


if __name__ == "__main__":
    sys.exit(main())
