from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from ..core.enums import AttendanceStatus, MarkMethod
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import AttendanceRecord
from .repository import AttendanceRecordRepository, StudentRepository

_RECORD_COLUMNS = """
    record_id, school_id, student_id, class_id, session_id, attendance_date, status,
    method, check_in_time, marked_by, remarks, is_modified, modified_by, modified_at
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=str(r["record_id"]),
        school_id=str(r["school_id"]),
        student_id=str(r["student_id"]),
        class_id=str(r["class_id"]),
        session_id=r.get("session_id"),
        attendance_date=r["attendance_date"],
        status=AttendanceStatus(r["status"]),
        method=MarkMethod(r["method"]),
        check_in_time=normalize_mysql_time(r.get("check_in_time")),
        marked_by=r.get("marked_by"),
        remarks=r.get("remarks"),
        is_modified=bool(r.get("is_modified")),
        modified_by=r.get("modified_by"),
        modified_at=r.get("modified_at"),
    )


class MySQLAttendanceRecordRepository(AttendanceRecordRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_student_and_date(self, *, student_id: str, attendance_date: date, school_id: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND attendance_date=%s AND school_id=%s
                """,
                (student_id, attendance_date, school_id),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create(self, record: AttendanceRecord) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    record_id, school_id, student_id, class_id, session_id, attendance_date,
                    status, method, check_in_time, marked_by, remarks
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    record.record_id,
                    record.school_id,
                    record.student_id,
                    record.class_id,
                    record.session_id,
                    record.attendance_date,
                    record.status.value,
                    record.method.value,
                    record.check_in_time,
                    record.marked_by,
                    record.remarks,
                ),
            )

    def update_mark(self, record: AttendanceRecord) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET class_id=%s, session_id=%s, status=%s, method=%s, check_in_time=%s,
                    marked_by=%s, remarks=%s, is_modified=%s, modified_by=%s, modified_at=%s
                WHERE record_id=%s AND school_id=%s
                """,
                (
                    record.class_id,
                    record.session_id,
                    record.status.value,
                    record.method.value,
                    record.check_in_time,
                    record.marked_by,
                    record.remarks,
                    int(record.is_modified),
                    record.modified_by,
                    record.modified_at,
                    record.record_id,
                    record.school_id,
                ),
            )
            return cur.rowcount > 0

    def count_by_status(self, *, class_id: str, attendance_date: date, school_id: str) -> Dict[AttendanceStatus, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT status, COUNT(*) AS cnt
                FROM attendance_records
                WHERE class_id=%s AND attendance_date=%s AND school_id=%s
                GROUP BY status
                """,
                (class_id, attendance_date, school_id),
            )
            return {AttendanceStatus(r["status"]): int(r["cnt"]) for r in fetchall(cur)}

    def list_for_class_and_date(self, *, class_id: str, attendance_date: date, school_id: str) -> List[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE class_id=%s AND attendance_date=%s AND school_id=%s
                ORDER BY student_id
                """,
                (class_id, attendance_date, school_id),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_student(
        self,
        *,
        student_id: str,
        school_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int,
        offset: int = 0,
    ) -> List[AttendanceRecord]:
        where = ["student_id=%s", "school_id=%s"]
        params: list = [student_id, school_id]
        if start_date:
            where.append("attendance_date >= %s")
            params.append(start_date)
        if end_date:
            where.append("attendance_date <= %s")
            params.append(end_date)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE {" AND ".join(where)}
                ORDER BY attendance_date DESC
                LIMIT %s OFFSET %s
                """,
                (*params, int(limit), int(offset)),
            )
            return [_to_record(r) for r in fetchall(cur)]


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def count_active_in_class(self, *, class_id: str, school_id: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS cnt FROM students WHERE class_id=%s AND school_id=%s AND status='active'",
                (class_id, school_id),
            )
            r = fetchone(cur)
            return int(r["cnt"]) if r else 0

    def list_active_ids_in_class(self, *, class_id: str, school_id: str) -> List[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT student_id FROM students WHERE class_id=%s AND school_id=%s AND status='active' ORDER BY student_id",
                (class_id, school_id),
            )
            return [str(r["student_id"]) for r in fetchall(cur)]
