import os
from datetime import date, timedelta
from rollcall.extensions import db, settings_service
from rollcall.models import (
    AttendanceEntry, AttendanceRecord, RoleEnum, SchoolClass, SessionSlot, Setting, StatusEnum, User,
)
from rollcall.settings import LOW_ATTENDANCE_THRESHOLD


def _user(name, email, external_id, role, password):
    user = User.query.filter_by(email=email).first()
    if not user:
        user = User(name=name, email=email, external_id=external_id, role=role)
        user.set_password(password)
        db.session.add(user)
    return user


def seed_data(reset=False):
    if reset:
        # Clear existing data (for testing)
        AttendanceEntry.query.delete()
        AttendanceRecord.query.delete()
        for school_class in SchoolClass.query.all():
            db.session.delete(school_class)
        SessionSlot.query.delete()
        Setting.query.delete()
        User.query.delete()
        db.session.commit()
        settings_service.cache.invalidate()

    admin_password = os.getenv("ADMIN_PASSWORD", "your_secure_password")
    _user("Administrator", "admin@example.com", "ADM-001", RoleEnum.admin, admin_password)

    teacher = _user("Grace Hopper", "grace@example.com", "T-001", RoleEnum.teacher, "teacherpass")
    students = [
        _user(name, f"{name.split()[0].lower()}@example.com", f"S-{i:03d}", RoleEnum.student, "studentpass")
        for i, name in enumerate(["Ada Lovelace", "Alan Turing", "Edsger Dijkstra", "Barbara Liskov"], 1)
    ]
    db.session.commit()

    for name in ["Period 1", "Period 2", "Period 3"]:
        if not SessionSlot.query.filter_by(name=name).first():
            db.session.add(SessionSlot(name=name))

    school_class = SchoolClass.query.filter_by(name="Computer Science 101").first()
    if not school_class:
        school_class = SchoolClass(name="Computer Science 101", teacher=teacher,
                                   subjects=["Algorithms", "Programming"])
        school_class.students = students
        db.session.add(school_class)
    db.session.commit()

    if not Setting.query.filter_by(key=LOW_ATTENDANCE_THRESHOLD).first():
        settings_service.update(LOW_ATTENDANCE_THRESHOLD, 75)

    # A week of Period 1 attendance; the last student misses every other day.
    today = date.today()
    for offset in range(7):
        day = today - timedelta(days=offset)
        if AttendanceRecord.query.filter_by(class_id=school_class.id, date=day,
                                            subject="Algorithms", session="Period 1").first():
            continue
        record = AttendanceRecord(class_id=school_class.id, date=day, subject="Algorithms", session="Period 1")
        record.entries = [
            AttendanceEntry(
                student_id=student.id,
                status=StatusEnum.absent if student is students[-1] and offset % 2 else StatusEnum.present,
                position=position,
            )
            for position, student in enumerate(students)
        ]
        db.session.add(record)
    db.session.commit()
