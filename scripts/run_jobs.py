"""Run every background job once: recurring tasks, overdue alerts, WhatsApp queue."""

from __future__ import annotations

import importlib
import json
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.task_manager.task_manager.container import build_container
from src.task_manager.task_manager.scheduler import run_all_jobs


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    settings = importlib.import_module(get_settings_module())
    settings_dict = {name: getattr(settings, name) for name in dir(settings) if name.isupper()}
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings_dict)

    print(json.dumps(run_all_jobs(container), indent=2))


if __name__ == "__main__":
    main()
