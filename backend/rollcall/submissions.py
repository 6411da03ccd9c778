"""
Taking attendance.

A submission always carries the whole roster for one
(class, date, subject, session) and replaces whatever was recorded before.
Single entries may be corrected afterwards, but only inside the edit window.
"""
from datetime import datetime, timedelta
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from rollcall.errors import Forbidden, NotFoundError, ValidationError, store_failure
from rollcall.extensions import db
from rollcall.models import AttendanceEntry, AttendanceRecord, SchoolClass, StatusEnum
from utils.access_control import resolve_scope
from utils.validation import parse_date, parse_id, parse_status, require_text


class AttendanceKey:
    """The unique (class, date, subject, session) an attendance record is stored under."""

    def __init__(self, class_id, date, subject, session):
        self.class_id = parse_id(class_id, "class_id", required=True)
        self.date = date if hasattr(date, "isoformat") else parse_date(date, required=True)
        self.subject = require_text(subject, "subject")
        self.session = require_text(session, "session")

    @classmethod
    def from_data(cls, data):
        return cls(data.get("class_id"), data.get("date"), data.get("subject"), data.get("session"))

    def filter_by(self):
        return {
            "class_id": self.class_id,
            "date": self.date,
            "subject": self.subject,
            "session": self.session,
        }

    def __repr__(self):
        return f"<AttendanceKey {self.class_id} {self.date} {self.subject!r} {self.session!r}>"


def get_class_for(ctx, class_id):
    """Loads a class the caller is allowed to take attendance for."""
    school_class = db.session.get(SchoolClass, class_id)
    if not school_class:
        raise NotFoundError("Class not found")
    if not resolve_scope(ctx).allows_class(school_class.id):
        raise Forbidden("You do not teach this class")
    return school_class


def build_entries_from_statuses(school_class, statuses):
    """
    Entries from an explicit {student_id: status} mapping, in roster order.
    Every student in the mapping must belong to the class.
    """
    parsed = {}
    for raw_id, raw_status in (statuses or {}).items():
        parsed[parse_id(raw_id, "student_id", required=True)] = parse_status(raw_status)

    roster = school_class.student_ids
    unknown = set(parsed) - set(roster)
    if unknown:
        raise ValidationError(f"Students not in class: {sorted(unknown)}")

    return [(student_id, parsed[student_id]) for student_id in roster if student_id in parsed]


def build_entries_from_scan(school_class, present_student_ids):
    """Every student in the roster, Present only if they were scanned."""
    present = {parse_id(sid, "student_id", required=True) for sid in (present_student_ids or [])}
    return [
        (student_id, StatusEnum.present if student_id in present else StatusEnum.absent)
        for student_id in school_class.student_ids
    ]


def _replace_entries(record, entries):
    record.entries = [
        AttendanceEntry(student_id=student_id, status=status, position=position)
        for position, (student_id, status) in enumerate(entries)
    ]
    record.touch()


def _upsert(key, entries):
    record = AttendanceRecord.query.filter_by(**key.filter_by()).first()
    if record is None:
        record = AttendanceRecord(**key.filter_by())
        db.session.add(record)
    else:
        # flush the old rows first so the (record, student) constraint holds
        record.entries = []
        db.session.flush()
    _replace_entries(record, entries)
    db.session.commit()
    return record


def save_attendance(key, entries):
    """Creates or fully overwrites the record for key. Concurrent writers: last one wins."""
    try:
        try:
            record = _upsert(key, entries)
        except IntegrityError:
            # another request created the same tuple first
            db.session.rollback()
            record = _upsert(key, entries)
    except SQLAlchemyError as e:
        raise store_failure(e, f"saving attendance {key!r}")

    current_app.logger.info("Saved attendance %r with %d entries", key, len(entries))
    return record


def submit_attendance(ctx, key, statuses):
    """Manual submission: statuses maps student id to 'Present'/'Absent'."""
    school_class = get_class_for(ctx, key.class_id)
    return save_attendance(key, build_entries_from_statuses(school_class, statuses))


def submit_scanned_attendance(ctx, key, present_student_ids):
    """QR / session-scan submission: unscanned students are recorded Absent."""
    school_class = get_class_for(ctx, key.class_id)
    return save_attendance(key, build_entries_from_scan(school_class, present_student_ids))


def attendance_sheet(ctx, key):
    """The roster for key with any statuses already recorded."""
    school_class = get_class_for(ctx, key.class_id)
    record = AttendanceRecord.query.filter_by(**key.filter_by()).first()
    return {
        "class": school_class.to_dict(),
        "date": key.date.isoformat(),
        "subject": key.subject,
        "session": key.session,
        "record_id": record.id if record else None,
        "students": [
            {
                "id": student.id,
                "name": student.name,
                "external_id": student.external_id,
                "status": record.status_for(student.id).value
                if record and record.status_for(student.id) else None,
            }
            for student in school_class.students
        ],
    }


def is_editable(record, now=None):
    window = timedelta(hours=current_app.config.get("EDIT_WINDOW_HOURS", 24))
    now = now or datetime.utcnow()
    return now - record.updated_at < window


def edit_attendance_entry(ctx, record_id, entry_id, new_status, now=None):
    """Corrects one entry's status while the record is still inside its edit window."""
    record_id = parse_id(record_id, "record_id", required=True)
    entry_id = parse_id(entry_id, "entry_id", required=True)
    status = parse_status(new_status)

    record = db.session.get(AttendanceRecord, record_id)
    if not record:
        raise NotFoundError("Attendance record not found")
    if not resolve_scope(ctx).allows_class(record.class_id):
        raise Forbidden("You do not teach this class")

    entry = next((e for e in record.entries if e.id == entry_id), None)
    if entry is None:
        raise NotFoundError("Attendance entry not found")

    if not is_editable(record, now):
        hours = current_app.config.get("EDIT_WINDOW_HOURS", 24)
        raise Forbidden(f"Attendance can only be edited within {hours} hours of submission")

    try:
        entry.status = status
        record.touch()
        db.session.commit()
    except SQLAlchemyError as e:
        raise store_failure(e, f"editing entry {entry_id} of record {record_id}")

    current_app.logger.info("Entry %s of record %s set to %s", entry_id, record_id, status.value)
    return record
