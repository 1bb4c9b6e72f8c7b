from __future__ import annotations

from datetime import date, datetime, time
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, AttendanceSession, StatusCounts


class AttendanceSessionRepository(Protocol):
    def create(self, session: AttendanceSession) -> None:
        raise NotImplementedError

    def get_by_id(self, session_id: str, school_id: str) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def get_active(self, *, class_id: str, session_date: date, school_id: str) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def update_counts(self, *, session_id: str, school_id: str, counts: StatusCounts) -> bool:
        raise NotImplementedError

    def complete(
        self,
        *,
        session_id: str,
        school_id: str,
        counts: StatusCounts,
        completed_at: datetime,
        end_time: time,
        notes: Optional[str] = None,
    ) -> bool:
        """Only transitions an active session; returns False otherwise."""

        raise NotImplementedError

    def list_for_class(self, *, class_id: str, school_id: str, limit: int) -> Sequence[AttendanceSession]:
        raise NotImplementedError


class AttendanceRecordRepository(Protocol):
    def get_for_student_and_date(self, *, student_id: str, attendance_date: date, school_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create(self, record: AttendanceRecord) -> None:
        raise NotImplementedError

    def update_mark(self, record: AttendanceRecord) -> bool:
        """Overwrite the mark fields of an existing record (matched by record_id)."""

        raise NotImplementedError

    def count_by_status(self, *, class_id: str, attendance_date: date, school_id: str) -> Mapping[AttendanceStatus, int]:
        raise NotImplementedError

    def list_for_class_and_date(self, *, class_id: str, attendance_date: date, school_id: str) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_student(
        self,
        *,
        student_id: str,
        school_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int,
        offset: int = 0,
    ) -> Sequence[AttendanceRecord]:
        """Newest attendance date first."""

        raise NotImplementedError


class StudentRepository(Protocol):
    def count_active_in_class(self, *, class_id: str, school_id: str) -> int:
        raise NotImplementedError

    def list_active_ids_in_class(self, *, class_id: str, school_id: str) -> Sequence[str]:
        raise NotImplementedError
