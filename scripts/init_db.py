"""Create the clinic database and apply database/schema.sql.

Usage: python scripts/init_db.py [--schema PATH] [--show-tables]
"""

from __future__ import annotations

import argparse
import importlib
import logging
import re
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.task_manager.task_manager.database.bootstrap import apply_schema, list_tables

_CREATE_TABLE = re.compile(r"CREATE TABLE IF NOT EXISTS\s+`?(\w+)`?", re.IGNORECASE)


def expected_tables(schema_path: Path) -> list[str]:
    return _CREATE_TABLE.findall(schema_path.read_text(encoding="utf-8"))


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply the clinic task manager schema")
    parser.add_argument("--schema", type=Path, default=REPO_ROOT / "database" / "schema.sql")
    parser.add_argument("--show-tables", action="store_true", help="print every table after applying")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    args = parse_args(argv)

    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    apply_schema(db_config, schema_path=args.schema)
    present = set(list_tables(db_config))
    wanted = expected_tables(args.schema)
    missing = [name for name in wanted if name not in present]

    if args.show_tables:
        for name in sorted(present):
            print(f"  {name}")
    if missing:
        print(f"FAILED: {target} is missing {', '.join(missing)}", file=sys.stderr)
        return 1

    print(f"OK: clinic schema ready on {target} ({len(wanted)} tables)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
