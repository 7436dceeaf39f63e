import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "qr_attendance_test"),
    "connection_timeout": 2,
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

QR_SESSION_TTL_SECONDS = 300
GEOFENCE_DEFAULT_RADIUS_METERS = 200.0

SESSION_REAP_INTERVAL_SECONDS = 60.0
ENABLE_SESSION_REAPER = False

LOG_LEVEL = "WARNING"
LOG_DIR = None
