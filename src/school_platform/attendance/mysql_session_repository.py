from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Sequence

from ..core.enums import SessionStatus, SessionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import AttendanceSession, StatusCounts
from .repository import AttendanceSessionRepository

_SESSION_COLUMNS = """
    session_id, school_id, class_id, teacher_id, session_date, session_type, status,
    start_time, end_time, total_students, present_count, absent_count, late_count,
    notes, completed_at
"""


def _to_session(r: dict) -> AttendanceSession:
    return AttendanceSession(
        session_id=str(r["session_id"]),
        school_id=str(r["school_id"]),
        class_id=str(r["class_id"]),
        teacher_id=str(r["teacher_id"]),
        session_date=r["session_date"],
        session_type=SessionType(r["session_type"]),
        status=SessionStatus(r["status"]),
        start_time=normalize_mysql_time(r.get("start_time")),
        end_time=normalize_mysql_time(r.get("end_time")),
        total_students=int(r.get("total_students") or 0),
        counts=StatusCounts(
            present=int(r.get("present_count") or 0),
            absent=int(r.get("absent_count") or 0),
            late=int(r.get("late_count") or 0),
        ),
        notes=r.get("notes"),
        completed_at=r.get("completed_at"),
    )


class MySQLAttendanceSessionRepository(AttendanceSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, session: AttendanceSession) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_sessions(
                    session_id, school_id, class_id, teacher_id, session_date, session_type,
                    status, start_time, total_students, notes
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    session.session_id,
                    session.school_id,
                    session.class_id,
                    session.teacher_id,
                    session.session_date,
                    session.session_type.value,
                    session.status.value,
                    session.start_time,
                    int(session.total_students),
                    session.notes,
                ),
            )

    def get_by_id(self, session_id: str, school_id: str) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SESSION_COLUMNS} FROM attendance_sessions WHERE session_id=%s AND school_id=%s",
                (session_id, school_id),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def get_active(self, *, class_id: str, session_date: date, school_id: str) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions
                WHERE class_id=%s AND session_date=%s AND school_id=%s AND status=%s
                LIMIT 1
                """,
                (class_id, session_date, school_id, SessionStatus.ACTIVE.value),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def update_counts(self, *, session_id: str, school_id: str, counts: StatusCounts) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET present_count=%s, absent_count=%s, late_count=%s
                WHERE session_id=%s AND school_id=%s
                """,
                (counts.present, counts.absent, counts.late, session_id, school_id),
            )
            return cur.rowcount > 0

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET status=%s, completed_at=%s, end_time=%s,
                    present_count=%s, absent_count=%s, late_count=%s, notes=%s
                WHERE session_id=%s AND school_id=%s AND status=%s
                """,
                (
                    SessionStatus.COMPLETED.value,
                    completed_at,
                    end_time,
                    counts.present,
                    counts.absent,
                    counts.late,
                    notes,
                    session_id,
                    school_id,
                    SessionStatus.ACTIVE.value,
                ),
            )
            return cur.rowcount > 0

    def list_for_class(self, *, class_id: str, school_id: str, limit: int) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM attendance_sessions
                WHERE class_id=%s AND school_id=%s
                ORDER BY session_date DESC, start_time DESC
                LIMIT %s
                """,
                (class_id, school_id, int(limit)),
            )
            return [_to_session(r) for r in fetchall(cur)]
