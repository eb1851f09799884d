"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_REPORT_DAYS = 7

# Attendance
DEFAULT_LATE_THRESHOLD_MINUTES = 15
DEFAULT_EARLY_OUT_THRESHOLD_MINUTES = 15
DEFAULT_BREAK_MINUTES = 60
DEFAULT_WEEKLY_OFF_DAYS = ("sunday",)
OPEN_PUNCH_LOOKBACK_DAYS = 2
MIN_OVERNIGHT_PUNCH_HOURS = 6
MAX_SHIFT_HOURS = 18
STALE_SESSION_HOURS = 18
# used for the half-day rule when no shift is assigned
DEFAULT_SHIFT_HOURS = 8

# Geofence
EARTH_RADIUS_METERS = 6371000
DEFAULT_GEOFENCE_ENABLED = True
DEFAULT_GEOFENCE_MODE = "strict"
DEFAULT_GEOFENCE_THRESHOLD_METERS = 500
DEFAULT_GEOFENCE_ADMIN_OVERRIDE = True

# Organization
DEFAULT_DEPARTMENTS = ("Management", "Medical", "Nursing")
DEFAULT_COUNTRY_CODE = "91"

# Tasks
LEAVE_APPROVAL_DUE_HOURS = 24
RECURRING_LOOKAHEAD_DAYS = 1

# WhatsApp delivery
WHATSAPP_BATCH_LIMIT = 50
WHATSAPP_TIER_BATCH_LIMIT = 25
WHATSAPP_SEND_DELAY_SECONDS = 0.5
WHATSAPP_TIMEOUT_SECONDS = 15
PENDING_PREVIEW_LIMIT = 20

# Overdue alerts: every 2h for the first N alerts, daily afterwards
OVERDUE_FAST_ALERT_LIMIT = 12
OVERDUE_FAST_INTERVAL_HOURS = 2
OVERDUE_SLOW_INTERVAL_HOURS = 24

# Background job cadence
WHATSAPP_QUEUE_INTERVAL_MINUTES = 1
OVERDUE_CHECK_INTERVAL_MINUTES = 60
RECURRING_CHECK_INTERVAL_MINUTES = 60
