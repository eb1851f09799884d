import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", "root"),
    "database": os.getenv("DB_NAME", "task_manager_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

WHATSAPP_API_URL = ""
WHATSAPP_API_KEY = ""
WHATSAPP_TIMEOUT_SECONDS = 1.0
WHATSAPP_SEND_DELAY_SECONDS = 0.0
WHATSAPP_BATCH_LIMIT = 50
DEFAULT_COUNTRY_CODE = "91"

ENABLE_SCHEDULER = False
SCHEDULER_TIMEZONE = "Asia/Kolkata"

LATE_GRACE_MINUTES = 0
