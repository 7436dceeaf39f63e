"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_TTL_SECONDS = 300
DEFAULT_GEOFENCE_RADIUS_METERS = 200.0
EARTH_RADIUS_METERS = 6_371_000.0

DEFAULT_REAP_INTERVAL_SECONDS = 60
DEFAULT_SCAN_INTERVAL_SECONDS = 0.3
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0

SESSION_ID_BYTES = 16
MANUAL_SESSION_ID = "manual"
SYSTEM_ISSUER_ID = "system"

MYSQL_DUPLICATE_KEY_ERRNO = 1062
