from datetime import date, datetime, timedelta
import pytest

from rollcall.errors import Forbidden, NotFoundError, ValidationError
from rollcall.extensions import db
from rollcall.models import AttendanceRecord, StatusEnum
from rollcall.submissions import (
    AttendanceKey, attendance_sheet, edit_attendance_entry, is_editable,
    submit_attendance, submit_scanned_attendance,
)
from utils.access_control import RoleContext


@pytest.fixture()
def roster(make_user, make_class):
    teacher = make_user("teacher")
    students = [make_user("student", name=n) for n in ("S1", "S2", "S3")]
    school_class = make_class(teacher, students)
    return teacher, students, school_class


def key_for(school_class, on="2024-03-01", subject="Maths", session="Period 1"):
    return AttendanceKey(school_class.id, on, subject, session)


def statuses(record):
    return [(e.student_id, e.status.value) for e in record.entries]


def test_scan_marks_unscanned_students_absent(roster):
    teacher, (s1, s2, s3), school_class = roster

    record = submit_scanned_attendance(RoleContext.for_user(teacher), key_for(school_class), [str(s1.id)])

    assert statuses(record) == [(s1.id, "Present"), (s2.id, "Absent"), (s3.id, "Absent")]


def test_manual_submit_keeps_roster_order(roster):
    teacher, (s1, s2, s3), school_class = roster

    record = submit_attendance(RoleContext.for_user(teacher), key_for(school_class),
                               {str(s3.id): "absent", str(s1.id): "Present"})

    assert statuses(record) == [(s1.id, "Present"), (s3.id, "Absent")]
    assert record.date == date(2024, 3, 1)


def test_resubmission_replaces_entries(roster):
    teacher, (s1, s2, s3), school_class = roster
    ctx = RoleContext.for_user(teacher)
    first = submit_attendance(ctx, key_for(school_class), {s1.id: "Present", s2.id: "Present"})

    second = submit_attendance(ctx, key_for(school_class), {s2.id: "Absent"})

    assert second.id == first.id
    assert statuses(second) == [(s2.id, "Absent")]
    assert AttendanceRecord.query.count() == 1


def test_distinct_sessions_are_distinct_records(roster):
    teacher, (s1, _, _), school_class = roster
    ctx = RoleContext.for_user(teacher)

    submit_attendance(ctx, key_for(school_class, session="Period 1"), {s1.id: "Present"})
    submit_attendance(ctx, key_for(school_class, session="Period 2"), {s1.id: "Absent"})

    assert AttendanceRecord.query.count() == 2


def test_scan_entries_are_unique_per_student(roster):
    teacher, (s1, _, _), school_class = roster

    record = submit_scanned_attendance(RoleContext.for_user(teacher), key_for(school_class),
                                       [s1.id, str(s1.id), s1.id])

    ids = [e.student_id for e in record.entries]
    assert len(ids) == len(set(ids)) == 3


def test_teacher_cannot_submit_for_other_class(roster, make_user):
    _, _, school_class = roster
    stranger = make_user("teacher")

    with pytest.raises(Forbidden):
        submit_attendance(RoleContext.for_user(stranger), key_for(school_class), {})


def test_admin_can_submit_for_any_class(roster, make_user):
    _, (s1, _, _), school_class = roster

    record = submit_attendance(RoleContext.for_user(make_user("admin")), key_for(school_class),
                               {s1.id: "Present"})

    assert statuses(record) == [(s1.id, "Present")]


def test_unknown_class_is_not_found(make_user):
    with pytest.raises(NotFoundError):
        submit_attendance(RoleContext.for_user(make_user("admin")),
                          AttendanceKey(999, "2024-03-01", "Maths", "Period 1"), {})


def test_student_outside_roster_is_rejected(roster, make_user):
    teacher, _, school_class = roster
    outsider = make_user("student")

    with pytest.raises(ValidationError):
        submit_attendance(RoleContext.for_user(teacher), key_for(school_class), {outsider.id: "Present"})


def test_invalid_status_is_rejected(roster):
    teacher, (s1, _, _), school_class = roster

    with pytest.raises(ValidationError):
        submit_attendance(RoleContext.for_user(teacher), key_for(school_class), {s1.id: "Late"})


@pytest.mark.parametrize("args", [
    ("x", "2024-03-01", "Maths", "Period 1"),
    (1, "03/01/2024", "Maths", "Period 1"),
    (1, "2024-03-01", "", "Period 1"),
    (1, "2024-03-01", "Maths", "  "),
])
def test_malformed_keys_are_rejected(args):
    with pytest.raises(ValidationError):
        AttendanceKey(*args)


def test_edit_inside_window(roster):
    teacher, (s1, s2, _), school_class = roster
    ctx = RoleContext.for_user(teacher)
    record = submit_attendance(ctx, key_for(school_class), {s1.id: "Present", s2.id: "Present"})
    entry = record.entries[1]

    edited = edit_attendance_entry(ctx, record.id, entry.id, "Absent")

    assert statuses(edited) == [(s1.id, "Present"), (s2.id, "Absent")]


def test_edit_after_window_is_forbidden_and_leaves_record(roster):
    teacher, (s1, _, _), school_class = roster
    ctx = RoleContext.for_user(teacher)
    record = submit_attendance(ctx, key_for(school_class), {s1.id: "Present"})
    stale = datetime.utcnow() - timedelta(hours=25)
    record.updated_at = stale
    db.session.commit()

    with pytest.raises(Forbidden):
        edit_attendance_entry(ctx, record.id, record.entries[0].id, "Absent")

    db.session.expire_all()
    record = db.session.get(AttendanceRecord, record.id)
    assert record.entries[0].status is StatusEnum.present
    assert record.updated_at == stale


def test_edit_window_boundary(roster):
    teacher, (s1, _, _), school_class = roster
    record = submit_attendance(RoleContext.for_user(teacher), key_for(school_class), {s1.id: "Present"})

    assert is_editable(record, now=record.updated_at + timedelta(hours=23, minutes=59))
    assert not is_editable(record, now=record.updated_at + timedelta(hours=24))


def test_edit_by_other_teacher_is_forbidden(roster, make_user):
    teacher, (s1, _, _), school_class = roster
    record = submit_attendance(RoleContext.for_user(teacher), key_for(school_class), {s1.id: "Present"})

    with pytest.raises(Forbidden):
        edit_attendance_entry(RoleContext.for_user(make_user("teacher")), record.id,
                              record.entries[0].id, "Absent")


def test_edit_unknown_entry(roster):
    teacher, (s1, _, _), school_class = roster
    ctx = RoleContext.for_user(teacher)
    record = submit_attendance(ctx, key_for(school_class), {s1.id: "Present"})

    with pytest.raises(NotFoundError):
        edit_attendance_entry(ctx, record.id, 9999, "Absent")
    with pytest.raises(ValidationError):
        edit_attendance_entry(ctx, "abc", record.entries[0].id, "Absent")


def test_sheet_shows_existing_statuses(roster):
    teacher, (s1, s2, s3), school_class = roster
    ctx = RoleContext.for_user(teacher)
    submit_attendance(ctx, key_for(school_class), {s1.id: "Present"})

    sheet = attendance_sheet(ctx, key_for(school_class))

    assert [s["status"] for s in sheet["students"]] == ["Present", None, None]
    assert sheet["record_id"] is not None


def test_deleting_class_removes_attendance(roster):
    teacher, (s1, _, _), school_class = roster
    submit_attendance(RoleContext.for_user(teacher), key_for(school_class), {s1.id: "Present"})

    db.session.delete(school_class)
    db.session.commit()

    assert AttendanceRecord.query.count() == 0
