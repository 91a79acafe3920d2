import os

# Settings shared by every environment; environment modules override what differs.

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "academy_attendance"),
}

# Biometric devices
DEVICE_PROBE_TIMEOUT = float(os.getenv("DEVICE_PROBE_TIMEOUT", "5"))
DEVICE_FETCH_TIMEOUT = float(os.getenv("DEVICE_FETCH_TIMEOUT", "10"))
DEVICE_FAILURE_THRESHOLD = int(os.getenv("DEVICE_FAILURE_THRESHOLD", "3"))

# Ambiguous fuzzy name matches go to quarantine instead of the first candidate.
STRICT_FUZZY_MATCH = bool(int(os.getenv("STRICT_FUZZY_MATCH", "1")))

UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads", "attendance"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE") or None
