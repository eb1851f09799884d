"""Send pending WhatsApp notifications once (for cron instead of the in-process scheduler).

Usage: python scripts/process_whatsapp_queue.py [high|medium|all]
"""

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


def main() -> None:
    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    settings = importlib.import_module(get_settings_module())
    settings_dict = {name: getattr(settings, name) for name in dir(settings) if name.isupper()}
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings_dict)

    tier = sys.argv[1].lower() if len(sys.argv) > 1 else "all"
    dispatcher = container.whatsapp_dispatcher
    if tier == "high":
        result = dispatcher.process_high_priority()
    elif tier == "medium":
        result = dispatcher.process_medium_priority()
    elif tier == "all":
        result = dispatcher.process_batch(limit=container.whatsapp_batch_limit)
    else:
        raise SystemExit("Tier must be high, medium or all")

    print(json.dumps(result.to_dict(), indent=2))


if __name__ == "__main__":
    main()
