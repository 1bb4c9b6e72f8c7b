from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import date
from typing import Optional

import pytest

from school_platform.attendance.model import AttendanceRecord, AttendanceSession, StatusCounts
from school_platform.attendance.service import AttendanceSessionService
from school_platform.common.clock import FixedClock
from school_platform.core.enums import SessionStatus
from school_platform.qrcodes.service import SessionTokenService


class StubRenderer:
    def render(self, payload: str) -> bytes:
        return b"\x89PNG-stub"


class InMemorySessions:
    def __init__(self):
        self.by_id: dict[str, AttendanceSession] = {}

    def create(self, session: AttendanceSession) -> None:
        self.by_id[session.session_id] = session

    def get_by_id(self, session_id: str, school_id: str) -> Optional[AttendanceSession]:
        s = self.by_id.get(session_id)
        return s if s and s.school_id == school_id else None

    def get_active(self, *, class_id: str, session_date: date, school_id: str) -> Optional[AttendanceSession]:
        for s in self.by_id.values():
            if (s.class_id, s.session_date, s.school_id, s.status) == (class_id, session_date, school_id, SessionStatus.ACTIVE):
                return s
        return None

    def update_counts(self, *, session_id: str, school_id: str, counts: StatusCounts) -> bool:
        s = self.get_by_id(session_id, school_id)
        if not s:
            return False
        self.by_id[session_id] = replace(s, counts=counts)
        return True

    def complete(self, *, session_id, school_id, counts, completed_at, end_time, notes=None) -> bool:
        s = self.get_by_id(session_id, school_id)
        if not s or s.status != SessionStatus.ACTIVE:
            return False
        self.by_id[session_id] = replace(
            s,
            status=SessionStatus.COMPLETED,
            counts=counts,
            completed_at=completed_at,
            end_time=end_time,
            notes=notes,
        )
        return True

    def list_for_class(self, *, class_id: str, school_id: str, limit: int):
        items = [s for s in self.by_id.values() if s.class_id == class_id and s.school_id == school_id]
        items.sort(key=lambda s: s.session_date, reverse=True)
        return items[:limit]


class InMemoryRecords:
    def __init__(self):
        self.by_id: dict[str, AttendanceRecord] = {}

    def get_for_student_and_date(self, *, student_id, attendance_date, school_id) -> Optional[AttendanceRecord]:
        for r in self.by_id.values():
            if (r.student_id, r.attendance_date, r.school_id) == (student_id, attendance_date, school_id):
                return r
        return None

    def create(self, record: AttendanceRecord) -> None:
        self.by_id[record.record_id] = record

    def update_mark(self, record: AttendanceRecord) -> bool:
        if record.record_id not in self.by_id:
            return False
        self.by_id[record.record_id] = record
        return True

    def count_by_status(self, *, class_id, attendance_date, school_id):
        return Counter(
            r.status
            for r in self.by_id.values()
            if (r.class_id, r.attendance_date, r.school_id) == (class_id, attendance_date, school_id)
        )

    def list_for_class_and_date(self, *, class_id, attendance_date, school_id):
        items = [
            r
            for r in self.by_id.values()
            if (r.class_id, r.attendance_date, r.school_id) == (class_id, attendance_date, school_id)
        ]
        return sorted(items, key=lambda r: r.student_id)

    def list_for_student(self, *, student_id, school_id, start_date=None, end_date=None, limit, offset=0):
        items = [
            r
            for r in self.by_id.values()
            if r.student_id == student_id
            and r.school_id == school_id
            and (start_date is None or r.attendance_date >= start_date)
            and (end_date is None or r.attendance_date <= end_date)
        ]
        items.sort(key=lambda r: r.attendance_date, reverse=True)
        return items[offset:offset + limit]


class InMemoryStudents:
    def __init__(self, active_by_class: dict[tuple[str, str], list[str]]):
        self._active = active_by_class

    def count_active_in_class(self, *, class_id: str, school_id: str) -> int:
        return len(self._active.get((class_id, school_id), []))

    def list_active_ids_in_class(self, *, class_id: str, school_id: str) -> list[str]:
        return list(self._active.get((class_id, school_id), []))


@pytest.fixture
def clock():
    return FixedClock(1_700_000_000_000)


@pytest.fixture
def sessions():
    return InMemorySessions()


@pytest.fixture
def records():
    return InMemoryRecords()


@pytest.fixture
def tokens(clock):
    return SessionTokenService(clock=clock, renderer=StubRenderer())


@pytest.fixture
def students():
    return InMemoryStudents({("C1", "SCH1"): [f"STU{i}" for i in range(1, 31)], ("C2", "SCH1"): ["STU90", "STU91"]})


@pytest.fixture
def service(sessions, records, students, tokens):
    return AttendanceSessionService(sessions, records, students, tokens)
