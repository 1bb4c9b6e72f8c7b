from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for access checks."""

    ADMIN = "admin"
    PRINCIPAL = "principal"
    TEACHER = "teacher"
    STAFF = "staff"
    PARENT = "parent"
    STUDENT = "student"


class SessionType(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    FULL_DAY = "full_day"


class SessionStatus(str, Enum):
    """Lifecycle of an attendance session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AttendanceStatus(str, Enum):
    """Normalized attendance status stored in the database."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"
    SICK = "sick"
    SUSPENDED = "suspended"


class MarkMethod(str, Enum):
    """How an attendance record was captured."""

    MANUAL = "manual"
    QR_CODE = "qr_code"
    BIOMETRIC = "biometric"
    BULK = "bulk"


class BulkOperation(str, Enum):
    MARK_ALL_PRESENT = "mark_all_present"
    MARK_ALL_ABSENT = "mark_all_absent"
    COPY_PREVIOUS_DAY = "copy_previous_day"
