import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "qr_attendance"),
    "connection_timeout": int(os.getenv("DB_CONNECT_TIMEOUT", "5")),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

QR_SESSION_TTL_SECONDS = int(os.getenv("QR_SESSION_TTL_SECONDS", "300"))
GEOFENCE_DEFAULT_RADIUS_METERS = float(os.getenv("GEOFENCE_DEFAULT_RADIUS_METERS", "200"))

SESSION_REAP_INTERVAL_SECONDS = float(os.getenv("SESSION_REAP_INTERVAL_SECONDS", "60"))
ENABLE_SESSION_REAPER = bool(int(os.getenv("ENABLE_SESSION_REAPER", "1")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")
