from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional, Sequence

from ..common.datetime_utils import to_iso
from ..common.validators import require_choice, require_non_empty
from ..core.enums import AttendanceStatus, MarkMethod, SessionStatus, SessionType
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class StatusCounts:
    present: int = 0
    absent: int = 0
    late: int = 0

    @classmethod
    def from_mapping(cls, counts: dict) -> "StatusCounts":
        return cls(
            present=int(counts.get(AttendanceStatus.PRESENT, 0)),
            absent=int(counts.get(AttendanceStatus.ABSENT, 0)),
            late=int(counts.get(AttendanceStatus.LATE, 0)),
        )


@dataclass(frozen=True)
class AttendanceSession:
    """Domain entity: one class roll-call on one date."""

    session_id: str
    school_id: str
    class_id: str
    teacher_id: str
    session_date: date
    session_type: SessionType = SessionType.FULL_DAY
    status: SessionStatus = SessionStatus.ACTIVE
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    total_students: int = 0
    counts: StatusCounts = field(default_factory=StatusCounts)
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.session_id,
            "schoolId": self.school_id,
            "classId": self.class_id,
            "teacherId": self.teacher_id,
            "sessionDate": to_iso(self.session_date),
            "sessionType": self.session_type.value,
            "status": self.status.value,
            "startTime": to_iso(self.start_time),
            "endTime": to_iso(self.end_time),
            "totalStudents": self.total_students,
            "presentCount": self.counts.present,
            "absentCount": self.counts.absent,
            "lateCount": self.counts.late,
            "notes": self.notes,
            "completedAt": to_iso(self.completed_at),
        }


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: a student's attendance for one day (one per student/day/school)."""

    record_id: str
    school_id: str
    student_id: str
    class_id: str
    attendance_date: date
    status: AttendanceStatus
    method: MarkMethod = MarkMethod.MANUAL
    session_id: Optional[str] = None
    check_in_time: Optional[time] = None
    marked_by: Optional[str] = None
    remarks: Optional[str] = None
    is_modified: bool = False
    modified_by: Optional[str] = None
    modified_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "schoolId": self.school_id,
            "studentId": self.student_id,
            "classId": self.class_id,
            "sessionId": self.session_id,
            "attendanceDate": to_iso(self.attendance_date),
            "status": self.status.value,
            "method": self.method.value,
            "checkInTime": to_iso(self.check_in_time),
            "markedBy": self.marked_by,
            "remarks": self.remarks,
            "isModified": self.is_modified,
            "modifiedBy": self.modified_by,
            "modifiedAt": to_iso(self.modified_at),
        }


@dataclass(frozen=True)
class AttendanceMark:
    """A requested mark for one student, before it is stored."""

    student_id: str
    class_id: str
    attendance_date: date
    status: AttendanceStatus
    method: MarkMethod = MarkMethod.MANUAL
    check_in_time: Optional[time] = None
    remarks: Optional[str] = None

    @classmethod
    def create(
        cls,
        *,
        student_id,
        class_id,
        attendance_date: date,
        status: str,
        method: Optional[str] = None,
        check_in_time: Optional[time] = None,
        remarks: Optional[str] = None,
    ) -> "AttendanceMark":
        if not isinstance(attendance_date, date):
            raise ValidationError("attendance_date is required")
        return cls(
            student_id=require_non_empty(student_id, "student_id"),
            class_id=require_non_empty(class_id, "class_id"),
            attendance_date=attendance_date,
            status=require_choice(status, "status", AttendanceStatus),
            method=require_choice(method or MarkMethod.MANUAL.value, "method", MarkMethod),
            check_in_time=check_in_time,
            remarks=str(remarks).strip() or None if remarks else None,
        )


@dataclass(frozen=True)
class ClassAttendance:
    """Records of one class on one date, against its active roll."""

    class_id: str
    attendance_date: date
    records: Sequence[AttendanceRecord]
    total_students: int

    @property
    def unmarked_count(self) -> int:
        return max(self.total_students - len(self.records), 0)

    def to_dict(self) -> dict:
        counts = Counter(r.status.value for r in self.records)
        return {
            "classId": self.class_id,
            "attendanceDate": to_iso(self.attendance_date),
            "attendance": [r.to_dict() for r in self.records],
            "totalStudents": self.total_students,
            "markedCount": len(self.records),
            "unmarkedCount": self.unmarked_count,
            "summary": {s.value: counts.get(s.value, 0) for s in AttendanceStatus},
        }
