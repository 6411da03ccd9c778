"""
Attendance reports.

Every report starts from the caller's Scope (see utils.access_control) and only
then applies the optional filters a user supplied, so an explicit class filter
can narrow what a teacher sees but never widen it.
"""
from datetime import date as date_cls
from flask import current_app
from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError

from rollcall.errors import Forbidden, store_failure
from rollcall.extensions import db, settings_service
from rollcall.models import (
    AttendanceEntry, AttendanceRecord, RoleEnum, SchoolClass, StatusEnum, User,
)
from utils.access_control import resolve_scope
from utils.validation import parse_date, parse_id


class ReportFilters:
    """Optional filters for a report. Date bounds are inclusive and independent."""

    def __init__(self, class_id=None, student_id=None, start_date=None, end_date=None):
        self.class_id = class_id
        self.student_id = student_id
        self.start_date = start_date
        self.end_date = end_date

    @classmethod
    def from_args(cls, args):
        return cls(
            class_id=parse_id(args.get("class_id"), "class_id"),
            student_id=parse_id(args.get("student_id"), "student_id"),
            start_date=parse_date(args.get("start_date"), "start_date"),
            end_date=parse_date(args.get("end_date"), "end_date"),
        )

    def as_dict(self):
        return {
            "class_id": self.class_id,
            "student_id": self.student_id,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


class ReportQuery:
    """
    Builds the exploded (one row per entry) attendance query.

    The class restriction always starts from the scope; filters added later are
    ANDed on top of it.
    """

    def __init__(self, scope):
        self.scope = scope
        self.class_ids = scope.narrow_class()
        self.predicates = []

    @property
    def is_empty(self):
        return self.class_ids is not None and not self.class_ids

    def in_class(self, class_id):
        if class_id is not None:
            narrowed = self.scope.narrow_class(class_id)
            self.class_ids = narrowed if self.class_ids is None else self.class_ids & narrowed
        return self

    def between(self, start_date=None, end_date=None):
        if start_date is not None:
            self.predicates.append(AttendanceRecord.date >= start_date)
        if end_date is not None:
            self.predicates.append(AttendanceRecord.date <= end_date)
        return self

    def for_student(self, student_id):
        if student_id is not None:
            self.predicates.append(AttendanceEntry.student_id == student_id)
        return self

    def apply(self, filters):
        return (self.between(filters.start_date, filters.end_date)
                    .in_class(filters.class_id)
                    .for_student(filters.student_id))

    def build(self):
        query = db.session.query(
            AttendanceRecord.id.label("record_id"),
            AttendanceEntry.id.label("entry_id"),
            AttendanceRecord.date,
            AttendanceRecord.subject,
            AttendanceRecord.session,
            AttendanceEntry.status,
            User.name.label("student_name"),
            User.external_id.label("student_external_id"),
            SchoolClass.name.label("class_name"),
        ).select_from(AttendanceRecord) \
            .join(AttendanceEntry, AttendanceEntry.record_id == AttendanceRecord.id) \
            .join(User, User.id == AttendanceEntry.student_id) \
            .join(SchoolClass, SchoolClass.id == AttendanceRecord.class_id)

        if self.class_ids is not None:
            query = query.filter(AttendanceRecord.class_id.in_(self.class_ids))
        for predicate in self.predicates:
            query = query.filter(predicate)

        # record/entry ids keep ties in insertion order
        return query.order_by(
            AttendanceRecord.date.desc(),
            User.name.asc(),
            AttendanceRecord.id.asc(),
            AttendanceEntry.position.asc(),
        )


def _row(result):
    return {
        "record_id": result.record_id,
        "entry_id": result.entry_id,
        "date": result.date,
        "student_name": result.student_name,
        "student_external_id": result.student_external_id,
        "class_name": result.class_name,
        "subject": result.subject,
        "session": result.session,
        "status": result.status.value,
    }


def get_report(ctx, filters=None):
    """
    Returns the attendance rows visible to ctx that match filters, newest first
    and then by student name.
    """
    if ctx.role is RoleEnum.student:
        raise Forbidden("Students can only view their own summary")

    filters = filters or ReportFilters()
    query = ReportQuery(resolve_scope(ctx)).apply(filters)
    if query.is_empty:
        current_app.logger.debug("Empty report scope for %r, skipping query", ctx)
        return []

    try:
        rows = [_row(r) for r in query.build().all()]
    except SQLAlchemyError as e:
        raise store_failure(e, f"report for {ctx!r}")

    current_app.logger.info("Report for %r with %s returned %d rows", ctx, filters.as_dict(), len(rows))
    return rows


def attendance_percentage(present_count, total_count):
    if not total_count:
        return 0.0
    return present_count / total_count * 100


def attendance_percentages(student_ids=None):
    """Per-student totals across every recorded entry, in first-seen order."""
    present = func.sum(case((AttendanceEntry.status == StatusEnum.present, 1), else_=0))
    query = db.session.query(
        AttendanceEntry.student_id,
        User.name,
        User.external_id,
        func.count(AttendanceEntry.id).label("total_count"),
        present.label("present_count"),
    ).join(User, User.id == AttendanceEntry.student_id) \
        .filter(User.role == RoleEnum.student)

    if student_ids is not None:
        query = query.filter(AttendanceEntry.student_id.in_(student_ids))

    results = query.group_by(AttendanceEntry.student_id, User.name, User.external_id) \
        .order_by(func.min(AttendanceEntry.id)).all()

    return [
        {
            "student_id": r.student_id,
            "name": r.name,
            "external_id": r.external_id,
            "total_count": r.total_count,
            "present_count": r.present_count or 0,
            "percentage": attendance_percentage(r.present_count or 0, r.total_count),
        }
        for r in results
    ]


def get_low_attendance(ctx, threshold=None):
    """
    Students in ctx's scope whose attendance percentage is strictly below the
    threshold, most at risk first.
    """
    if ctx.role is RoleEnum.student:
        raise Forbidden("Students can only view their own summary")

    scope = resolve_scope(ctx)
    if scope.student_ids is not None and not scope.student_ids:
        return []

    if threshold is None:
        threshold = settings_service.low_attendance_threshold()

    try:
        stats = attendance_percentages(scope.student_ids)
    except SQLAlchemyError as e:
        raise store_failure(e, f"low attendance for {ctx!r}")

    flagged = [s for s in stats if s["percentage"] < threshold]
    flagged.sort(key=lambda s: s["percentage"])
    return [
        {
            "student_id": s["student_id"],
            "name": s["name"],
            "external_id": s["external_id"],
            "percentage": s["percentage"],
        }
        for s in flagged
    ]


def student_summary(student_id, recent=5):
    """Overall and per-subject attendance for one student, plus their latest records."""
    records = AttendanceRecord.query \
        .join(AttendanceEntry, AttendanceEntry.record_id == AttendanceRecord.id) \
        .filter(AttendanceEntry.student_id == student_id) \
        .order_by(AttendanceRecord.date.desc(), AttendanceRecord.id.desc()) \
        .all()

    total = present = 0
    subjects = {}
    for record in records:
        status = record.status_for(student_id)
        if status is None:
            continue
        stats = subjects.setdefault(record.subject, {"total": 0, "present": 0})
        total += 1
        stats["total"] += 1
        if status is StatusEnum.present:
            present += 1
            stats["present"] += 1

    for stats in subjects.values():
        stats["percentage"] = attendance_percentage(stats["present"], stats["total"])

    return {
        "overall_percentage": attendance_percentage(present, total),
        "total_count": total,
        "present_count": present,
        "subjects": subjects,
        "recent_records": [
            {
                "date": r.date.isoformat(),
                "class_name": r.school_class.name if r.school_class else None,
                "subject": r.subject,
                "session": r.session,
                "status": r.status_for(student_id).value,
            }
            for r in records[:recent]
        ],
    }


def dashboard_summary(today=None):
    today = today or date_cls.today()

    counts = dict(
        db.session.query(User.role, func.count(User.id)).group_by(User.role).all()
    )
    todays = dict(
        db.session.query(AttendanceEntry.status, func.count(AttendanceEntry.id))
        .join(AttendanceRecord, AttendanceRecord.id == AttendanceEntry.record_id)
        .filter(AttendanceRecord.date == today)
        .group_by(AttendanceEntry.status)
        .all()
    )

    return {
        "student_count": counts.get(RoleEnum.student, 0),
        "teacher_count": counts.get(RoleEnum.teacher, 0),
        "class_count": SchoolClass.query.count(),
        "present_today": todays.get(StatusEnum.present, 0),
        "absent_today": todays.get(StatusEnum.absent, 0),
    }
