from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from ..common.validators import require_choice, require_non_empty
from ..core.constants import ATTENDANCE_MANAGER_ROLES, DEFAULT_SESSION_HISTORY_LIMIT, DEFAULT_STUDENT_ATTENDANCE_LIMIT
from ..core.enums import AttendanceStatus, BulkOperation, MarkMethod, Role, SessionStatus, SessionType
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..qrcodes.model import IssuedSessionToken
from ..qrcodes.service import SessionTokenService
from .model import AttendanceMark, AttendanceRecord, AttendanceSession, ClassAttendance, StatusCounts
from .repository import AttendanceRecordRepository, AttendanceSessionRepository, StudentRepository

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class AttendanceSessionService:
    """Attendance sessions, QR check-in and manual or bulk marking."""

    def __init__(
        self,
        sessions: AttendanceSessionRepository,
        records: AttendanceRecordRepository,
        students: StudentRepository,
        tokens: SessionTokenService,
    ):
        self._sessions = sessions
        self._records = records
        self._students = students
        self._tokens = tokens

    def start_session(
        self,
        *,
        school_id: str,
        class_id: str,
        teacher_id: str,
        session_date: date,
        session_type: str = SessionType.FULL_DAY.value,
        notes: Optional[str] = None,
        now: datetime | None = None,
    ) -> Tuple[AttendanceSession, IssuedSessionToken]:
        now = now or datetime.now()
        school_id = require_non_empty(school_id, "school_id")
        class_id = require_non_empty(class_id, "class_id")
        teacher_id = require_non_empty(teacher_id, "teacher_id")
        kind = require_choice(session_type, "session_type", SessionType)

        existing = self._sessions.get_active(class_id=class_id, session_date=session_date, school_id=school_id)
        if existing:
            raise ConflictError("Attendance session already active for this class and date")

        session = AttendanceSession(
            session_id=_new_id(),
            school_id=school_id,
            class_id=class_id,
            teacher_id=teacher_id,
            session_date=session_date,
            session_type=kind,
            status=SessionStatus.ACTIVE,
            start_time=now.time().replace(microsecond=0),
            total_students=self._students.count_active_in_class(class_id=class_id, school_id=school_id),
            notes=notes,
        )
        # a failed issuance must not leave an active session behind
        issued = self._tokens.issue(session.session_id, school_id)
        self._sessions.create(session)

        logger.info(
            "Attendance session started: session=%s class=%s teacher=%s date=%s school=%s",
            session.session_id,
            class_id,
            teacher_id,
            session_date,
            school_id,
        )
        return session, issued

    def refresh_qr(self, session_id: str, school_id: str) -> IssuedSessionToken:
        session = self._sessions.get_by_id(session_id, school_id)
        if not session:
            raise NotFoundError("Attendance session not found")
        if not session.is_active:
            raise ValidationError("Attendance session not active")
        return self._tokens.issue(session.session_id, school_id)

    def get_session(self, session_id: str, school_id: str) -> AttendanceSession:
        session = self._sessions.get_by_id(session_id, school_id)
        if not session:
            raise NotFoundError("Attendance session not found")
        return session

    def get_history(self, *, class_id: str, school_id: str, limit: int = DEFAULT_SESSION_HISTORY_LIMIT) -> Sequence[AttendanceSession]:
        return self._sessions.list_for_class(class_id=class_id, school_id=school_id, limit=limit)

    def mark_attendance_by_qr(
        self,
        *,
        payload: str,
        student_id: str,
        school_id: str,
        now: datetime | None = None,
    ) -> AttendanceRecord:
        now = now or datetime.now()
        student_id = require_non_empty(student_id, "student_id")

        claims = self._tokens.verify(payload, school_id)
        if claims is None:
            raise ValidationError("Invalid or expired QR code")

        session = self._sessions.get_by_id(claims.session_id, school_id) if claims.session_id else None
        if not session or not session.is_active:
            raise ValidationError("Attendance session not active")

        record = self._mark(
            AttendanceMark(
                student_id=student_id,
                class_id=session.class_id,
                attendance_date=session.session_date,
                status=AttendanceStatus.PRESENT,
                method=MarkMethod.QR_CODE,
                check_in_time=now.time().replace(microsecond=0),
            ),
            school_id=school_id,
            marked_by=session.teacher_id,
            session_id=session.session_id,
            now=now,
        )
        self._refresh_counts(session)
        logger.info("Attendance marked via QR: student=%s session=%s", student_id, session.session_id)
        return record

    def complete_session(
        self,
        session_id: str,
        school_id: str,
        *,
        notes: Optional[str] = None,
        now: datetime | None = None,
    ) -> AttendanceSession:
        now = now or datetime.now()
        session = self._sessions.get_by_id(session_id, school_id)
        if not session or not session.is_active:
            raise NotFoundError("Session not found or already completed")

        counts = self._count(session)
        end_time = now.time().replace(microsecond=0)
        final_notes = notes or session.notes
        ok = self._sessions.complete(
            session_id=session.session_id,
            school_id=school_id,
            counts=counts,
            completed_at=now,
            end_time=end_time,
            notes=final_notes,
        )
        if not ok:
            raise NotFoundError("Session not found or already completed")

        logger.info("Attendance session completed: session=%s school=%s", session_id, school_id)
        return replace(
            session,
            status=SessionStatus.COMPLETED,
            counts=counts,
            completed_at=now,
            end_time=end_time,
            notes=final_notes,
        )

    def mark_attendance(
        self,
        *,
        school_id: str,
        marked_by: str,
        current_role,
        marks: Sequence[AttendanceMark],
        session_id: Optional[str] = None,
        now: datetime | None = None,
    ) -> List[AttendanceRecord]:
        """Mark (or re-mark) a batch of students by hand.

        Every mark is validated before anything is written. When ``session_id``
        is given it must belong to the school; its counts are refreshed
        afterwards, as are those of any active session covering a marked
        class and date.
        """
        _require_manager(current_role)
        now = now or datetime.now()
        if not marks:
            raise ValidationError("Attendance records array is required")

        session = None
        if session_id:
            session = self._sessions.get_by_id(session_id, school_id)
            if not session:
                raise NotFoundError("Attendance session not found")

        results = [
            self._mark(
                mark,
                school_id=school_id,
                marked_by=marked_by,
                session_id=session.session_id if session else None,
                now=now,
            )
            for mark in marks
        ]
        self._refresh_affected_counts(school_id, marks, session)

        logger.info("Attendance marked for %d students: school=%s by=%s session=%s", len(results), school_id, marked_by, session_id)
        return results

    def bulk_mark(
        self,
        *,
        operation: str,
        school_id: str,
        class_id: str,
        attendance_date: date,
        marked_by: str,
        current_role,
        from_date: Optional[date] = None,
        now: datetime | None = None,
    ) -> List[AttendanceRecord]:
        _require_manager(current_role)
        now = now or datetime.now()
        op = require_choice(operation, "operation", BulkOperation)
        class_id = require_non_empty(class_id, "class_id")

        if op == BulkOperation.COPY_PREVIOUS_DAY:
            if from_date is None:
                raise ValidationError("from_date is required to copy attendance")
            previous = self._records.list_for_class_and_date(class_id=class_id, attendance_date=from_date, school_id=school_id)
            if not previous:
                raise ValidationError("No attendance records found for the specified date")
            marks = [
                AttendanceMark(
                    student_id=r.student_id,
                    class_id=class_id,
                    attendance_date=attendance_date,
                    status=r.status,
                    method=MarkMethod.BULK,
                    remarks=r.remarks,
                )
                for r in previous
            ]
        else:
            status = AttendanceStatus.PRESENT if op == BulkOperation.MARK_ALL_PRESENT else AttendanceStatus.ABSENT
            marks = [
                AttendanceMark(
                    student_id=student_id,
                    class_id=class_id,
                    attendance_date=attendance_date,
                    status=status,
                    method=MarkMethod.BULK,
                )
                for student_id in self._students.list_active_ids_in_class(class_id=class_id, school_id=school_id)
            ]

        results = [self._mark(mark, school_id=school_id, marked_by=marked_by, now=now) for mark in marks]
        self._refresh_affected_counts(school_id, marks)

        logger.info("Bulk operation %s: class=%s date=%s records=%d", op.value, class_id, attendance_date, len(results))
        return results

    def get_class_attendance(self, *, class_id: str, attendance_date: date, school_id: str) -> ClassAttendance:
        return ClassAttendance(
            class_id=class_id,
            attendance_date=attendance_date,
            records=self._records.list_for_class_and_date(
                class_id=class_id,
                attendance_date=attendance_date,
                school_id=school_id,
            ),
            total_students=self._students.count_active_in_class(class_id=class_id, school_id=school_id),
        )

    def get_student_attendance(
        self,
        *,
        student_id: str,
        school_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = DEFAULT_STUDENT_ATTENDANCE_LIMIT,
    ) -> Sequence[AttendanceRecord]:
        if start_date and end_date and start_date > end_date:
            raise ValidationError("startDate must not be after endDate")
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        return self._records.list_for_student(
            student_id=student_id,
            school_id=school_id,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=(page - 1) * limit,
        )

    def _mark(
        self,
        mark: AttendanceMark,
        *,
        school_id: str,
        marked_by: str,
        now: datetime,
        session_id: Optional[str] = None,
    ) -> AttendanceRecord:
        existing = self._records.get_for_student_and_date(
            student_id=mark.student_id,
            attendance_date=mark.attendance_date,
            school_id=school_id,
        )
        if existing:
            updated = replace(
                existing,
                class_id=mark.class_id,
                session_id=session_id or existing.session_id,
                status=mark.status,
                method=mark.method,
                check_in_time=mark.check_in_time or existing.check_in_time,
                marked_by=marked_by,
                remarks=mark.remarks if mark.remarks is not None else existing.remarks,
                is_modified=True,
                modified_by=marked_by,
                modified_at=now,
            )
            self._records.update_mark(updated)
            return updated

        record = AttendanceRecord(
            record_id=_new_id(),
            school_id=school_id,
            student_id=mark.student_id,
            class_id=mark.class_id,
            session_id=session_id,
            attendance_date=mark.attendance_date,
            status=mark.status,
            method=mark.method,
            check_in_time=mark.check_in_time,
            marked_by=marked_by,
            remarks=mark.remarks,
        )
        self._records.create(record)
        return record

    def _count(self, session: AttendanceSession) -> StatusCounts:
        by_status = self._records.count_by_status(
            class_id=session.class_id,
            attendance_date=session.session_date,
            school_id=session.school_id,
        )
        return StatusCounts.from_mapping(by_status)

    def _refresh_counts(self, session: AttendanceSession) -> None:
        self._sessions.update_counts(
            session_id=session.session_id,
            school_id=session.school_id,
            counts=self._count(session),
        )

    def _refresh_affected_counts(
        self,
        school_id: str,
        marks: Sequence[AttendanceMark],
        session: Optional[AttendanceSession] = None,
    ) -> None:
        refreshed = set()
        if session:
            self._refresh_counts(session)
            refreshed.add(session.session_id)
        for class_id, attendance_date in {(m.class_id, m.attendance_date) for m in marks}:
            active = self._sessions.get_active(class_id=class_id, session_date=attendance_date, school_id=school_id)
            if active and active.session_id not in refreshed:
                self._refresh_counts(active)
                refreshed.add(active.session_id)


def _require_manager(current_role) -> None:
    try:
        role = Role(current_role)
    except ValueError:
        raise AuthorizationError("You do not have permission to mark attendance")
    if role.value not in ATTENDANCE_MANAGER_ROLES:
        raise AuthorizationError("You do not have permission to mark attendance")
