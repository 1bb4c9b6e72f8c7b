"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

SESSION_TOKEN_KIND = "attendance_session"
SESSION_TOKEN_TTL_MINUTES = 15

QR_IMAGE_SIZE = 256
QR_BORDER = 1
QR_ERROR_CORRECTION = "M"
QR_DARK_COLOR = "#FF6B35"
QR_LIGHT_COLOR = "#FFFFFF"

DEFAULT_SESSION_HISTORY_LIMIT = 20
DEFAULT_STUDENT_ATTENDANCE_LIMIT = 50
MAX_PAGE_LIMIT = 100

ATTENDANCE_MANAGER_ROLES = frozenset({"admin", "principal", "teacher"})
