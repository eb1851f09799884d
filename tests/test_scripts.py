from pathlib import Path

from scripts import init_db, seed_db

SCHEMA = Path(__file__).resolve().parents[1] / "database" / "schema.sql"


def test_expected_tables_cover_the_clinic_schema():
    tables = init_db.expected_tables(SCHEMA)
    assert tables[0] == "organizations"
    assert {"attendance_records", "tasks", "recurring_task_templates", "notifications"} <= set(tables)
    assert len(tables) == len(set(tables))


def test_init_db_arguments():
    args = init_db.parse_args(["--show-tables"])
    assert args.show_tables
    assert args.schema == SCHEMA


def test_seed_db_can_skip_demo_users():
    assert not seed_db.parse_args([]).skip_demo_users
    args = seed_db.parse_args(["--skip-demo-users", "--seed", "other.sql"])
    assert args.skip_demo_users
    assert args.seed == Path("other.sql")
