from __future__ import annotations

from datetime import date, datetime, time

import pytest

from school_platform.attendance.model import AttendanceMark
from school_platform.core.enums import AttendanceStatus, MarkMethod
from school_platform.core.exceptions import AuthorizationError, NotFoundError, ValidationError

TODAY = date(2026, 3, 2)
YESTERDAY = date(2026, 3, 1)
NOW = datetime(2026, 3, 2, 8, 15, 0)


def mark(student_id="STU1", status="present", **overrides):
    kwargs = dict(student_id=student_id, class_id="C1", attendance_date=TODAY, status=status)
    kwargs.update(overrides)
    return AttendanceMark.create(**kwargs)


def mark_by_hand(service, marks, **overrides):
    kwargs = dict(school_id="SCH1", marked_by="T1", current_role="teacher", marks=marks, now=NOW)
    kwargs.update(overrides)
    return service.mark_attendance(**kwargs)


def bulk(service, operation, **overrides):
    kwargs = dict(
        operation=operation,
        school_id="SCH1",
        class_id="C1",
        attendance_date=TODAY,
        marked_by="T1",
        current_role="teacher",
        now=NOW,
    )
    kwargs.update(overrides)
    return service.bulk_mark(**kwargs)


def test_mark_create_validates_input():
    m = mark(status="late", method="biometric", check_in_time=time(8, 10), remarks="  bus  ")
    assert m.status == AttendanceStatus.LATE
    assert m.method == MarkMethod.BIOMETRIC
    assert m.remarks == "bus"

    assert mark().method == MarkMethod.MANUAL

    with pytest.raises(ValidationError):
        mark(status="asleep")
    with pytest.raises(ValidationError):
        mark(method="carrier_pigeon")
    with pytest.raises(ValidationError):
        mark(student_id="  ")
    with pytest.raises(ValidationError):
        mark(attendance_date=None)


def test_manual_marking_any_status(service, records):
    results = mark_by_hand(service, [mark("STU1", "present"), mark("STU2", "sick", remarks="flu")])

    assert [r.status for r in results] == [AttendanceStatus.PRESENT, AttendanceStatus.SICK]
    assert all(r.method == MarkMethod.MANUAL for r in results)
    assert all(r.marked_by == "T1" for r in results)
    assert results[1].remarks == "flu"
    assert len(records.by_id) == 2


def test_manual_remark_updates_record_as_modified(service, records):
    first = mark_by_hand(service, [mark("STU1", "absent", remarks="no show")])[0]
    second = mark_by_hand(service, [mark("STU1", "late", check_in_time=time(8, 40))], marked_by="P1", current_role="principal")[0]

    assert len(records.by_id) == 1
    assert second.record_id == first.record_id
    assert second.status == AttendanceStatus.LATE
    assert second.is_modified is True
    assert second.modified_by == "P1"
    assert second.remarks == "no show"
    assert second.check_in_time == time(8, 40)


@pytest.mark.parametrize("role", ["student", "parent", "staff", None, "superuser"])
def test_marking_requires_a_manager_role(service, role):
    with pytest.raises(AuthorizationError):
        mark_by_hand(service, [mark()], current_role=role)
    with pytest.raises(AuthorizationError):
        bulk(service, "mark_all_present", current_role=role)


def test_manual_marking_rejects_empty_batch_and_unknown_session(service):
    with pytest.raises(ValidationError):
        mark_by_hand(service, [])
    with pytest.raises(NotFoundError):
        mark_by_hand(service, [mark()], session_id="missing")


def test_manual_marking_refreshes_active_session_counts(service, sessions):
    session, _ = service.start_session(school_id="SCH1", class_id="C1", teacher_id="T1", session_date=TODAY, now=NOW)

    results = mark_by_hand(
        service,
        [mark("STU1", "present"), mark("STU2", "absent"), mark("STU3", "late")],
        session_id=session.session_id,
    )

    assert all(r.session_id == session.session_id for r in results)
    counts = sessions.by_id[session.session_id].counts
    assert (counts.present, counts.absent, counts.late) == (1, 1, 1)


def test_mark_all_present_and_absent(service, records):
    present = bulk(service, "mark_all_present")
    assert len(present) == 30
    assert {r.status for r in present} == {AttendanceStatus.PRESENT}
    assert {r.method for r in present} == {MarkMethod.BULK}

    absent = bulk(service, "mark_all_absent")
    assert len(records.by_id) == 30
    assert {r.status for r in absent} == {AttendanceStatus.ABSENT}
    assert all(r.is_modified for r in absent)


def test_copy_previous_day(service):
    mark_by_hand(
        service,
        [
            mark("STU1", "present", attendance_date=YESTERDAY),
            mark("STU2", "excused", attendance_date=YESTERDAY, remarks="trip"),
        ],
    )

    copied = bulk(service, "copy_previous_day", from_date=YESTERDAY)

    assert [(r.student_id, r.status, r.attendance_date) for r in copied] == [
        ("STU1", AttendanceStatus.PRESENT, TODAY),
        ("STU2", AttendanceStatus.EXCUSED, TODAY),
    ]
    assert copied[1].remarks == "trip"


def test_copy_previous_day_needs_source_records(service):
    with pytest.raises(ValidationError):
        bulk(service, "copy_previous_day")
    with pytest.raises(ValidationError, match="No attendance records"):
        bulk(service, "copy_previous_day", from_date=YESTERDAY)


def test_unknown_bulk_operation(service):
    with pytest.raises(ValidationError):
        bulk(service, "mark_all_sick")


def test_class_attendance_lookup(service):
    mark_by_hand(service, [mark("STU1", "present"), mark("STU2", "late"), mark("STU90", "absent", class_id="C2")])

    result = service.get_class_attendance(class_id="C1", attendance_date=TODAY, school_id="SCH1")

    assert [r.student_id for r in result.records] == ["STU1", "STU2"]
    assert result.total_students == 30
    assert result.unmarked_count == 28
    data = result.to_dict()
    assert data["markedCount"] == 2
    assert data["summary"]["present"] == 1
    assert data["summary"]["late"] == 1
    assert data["summary"]["absent"] == 0

    other_school = service.get_class_attendance(class_id="C1", attendance_date=TODAY, school_id="SCH2")
    assert list(other_school.records) == []


def test_student_attendance_history(service):
    for day in (1, 2, 3):
        mark_by_hand(service, [mark("STU1", "present", attendance_date=date(2026, 3, day))])

    newest_first = service.get_student_attendance(student_id="STU1", school_id="SCH1")
    assert [r.attendance_date.day for r in newest_first] == [3, 2, 1]

    ranged = service.get_student_attendance(
        student_id="STU1", school_id="SCH1", start_date=date(2026, 3, 2), end_date=date(2026, 3, 3)
    )
    assert [r.attendance_date.day for r in ranged] == [3, 2]

    second_page = service.get_student_attendance(student_id="STU1", school_id="SCH1", page=2, limit=2)
    assert [r.attendance_date.day for r in second_page] == [1]

    with pytest.raises(ValidationError):
        service.get_student_attendance(
            student_id="STU1", school_id="SCH1", start_date=date(2026, 3, 3), end_date=date(2026, 3, 1)
        )
