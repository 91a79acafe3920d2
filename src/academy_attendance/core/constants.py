"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_HISTORY_LIMIT = 31
DEFAULT_UNRESOLVED_LIMIT = 200

# Device network calls (seconds)
DEFAULT_PROBE_TIMEOUT = 5.0
DEFAULT_FETCH_TIMEOUT = 10.0

# Consecutive failed syncs before a pull device is flipped to inactive
DEFAULT_DEVICE_FAILURE_THRESHOLD = 3

EBIOSERVER_API_VERSION = "1.0"

# Widths of the attendance_events / attendance_records text columns
MAX_EMPLOYEE_CODE_LENGTH = 100
MAX_EMPLOYEE_NAME_LENGTH = 150
MAX_VERIFICATION_TOKEN_LENGTH = 255
MAX_EVENT_REASON_LENGTH = 500

HOURS_PRECISION = 2
