import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", "root"),
    "database": os.getenv("DB_NAME", "task_manager_db"),
}

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo data on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

# WhatsApp gateway
WHATSAPP_API_URL = os.getenv("WHATSAPP_API_URL", "")
WHATSAPP_API_KEY = os.getenv("WHATSAPP_API_KEY", "")
WHATSAPP_TIMEOUT_SECONDS = float(os.getenv("WHATSAPP_TIMEOUT_SECONDS", "15"))
WHATSAPP_SEND_DELAY_SECONDS = float(os.getenv("WHATSAPP_SEND_DELAY_SECONDS", "0.5"))
WHATSAPP_BATCH_LIMIT = int(os.getenv("WHATSAPP_BATCH_LIMIT", "50"))
DEFAULT_COUNTRY_CODE = os.getenv("DEFAULT_COUNTRY_CODE", "91")

# Background jobs (WhatsApp queue, overdue alerts, recurring tasks)
ENABLE_SCHEDULER = bool(int(os.getenv("ENABLE_SCHEDULER", "0")))
SCHEDULER_TIMEZONE = os.getenv("SCHEDULER_TIMEZONE", "Asia/Kolkata")

# Extra minutes on top of each shift's late threshold
LATE_GRACE_MINUTES = int(os.getenv("LATE_GRACE_MINUTES", "0"))
