import os

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

STATUS_NONE = "none"
STATUS_IN_BUILDING = "in_building"
STATUS_LATE = "late"
STATUS_CANCEL = "cancel"
VALID_STATUSES = (STATUS_NONE, STATUS_IN_BUILDING, STATUS_LATE, STATUS_CANCEL)

ROLE_ADMIN = "admin"
ROLE_READONLY = "readonly"

# Database path (allow environment variable override for testing)
DEFAULT_DB_PATH = os.getenv("PTC_DB_PATH", "data/ptcdash.db")

# The single administrator identity
ADMIN_EMAIL = os.getenv("PTC_ADMIN_EMAIL", "admin@example.org")

# Google Sheet mirrored by /api/sync; must be shared as "Anyone with the link can view"
GOOGLE_SHEET_ID = os.getenv("PTC_SHEET_ID", "1FhnS8B4GKz3vA3COT0RGqJpKz4AdDf28Tq-zfvDV8sc")
SHEET_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"
FETCH_TIMEOUT_SECONDS = float(os.getenv("PTC_FETCH_TIMEOUT", "20"))
MAX_REDIRECTS = 5

# Web sessions
SESSION_SECRET = os.getenv("PTC_SESSION_SECRET", "ptc-dash-secret-key-change-in-production")
SESSION_MAX_AGE = int(os.getenv("PTC_SESSION_MAX_AGE", str(8 * 60 * 60)))
