from datetime import date
import itertools
import pytest

from rollcall import create_app
from rollcall.config import TestConfig
from rollcall.extensions import db, settings_service
from rollcall.models import (
    AttendanceEntry, AttendanceRecord, RoleEnum, SchoolClass, StatusEnum, User,
)

PASSWORD = "secret-pass"
_counter = itertools.count(1)


@pytest.fixture()
def app(tmp_path):
    flask_app = create_app(TestConfig)
    flask_app.config.update({"AUDIT_LOG_FILE": str(tmp_path / "audit.log")})
    settings_service.cache.invalidate()

    with flask_app.app_context():
        yield flask_app
        db.session.remove()
        db.drop_all()

    settings_service.cache.invalidate()


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture()
def make_user(app):
    def _make_user(role="student", name=None, external_id=None, email=None):
        n = next(_counter)
        role = RoleEnum(role)
        user = User(
            name=name or f"{role.value.title()} {n}",
            external_id=external_id or f"{role.value[0].upper()}-{n:04d}",
            email=email or f"{role.value}{n}@example.com",
            role=role,
        )
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture()
def make_class(app):
    def _make_class(teacher, students=(), name=None, subjects=("Maths",)):
        school_class = SchoolClass(
            name=name or f"Class {next(_counter)}",
            teacher=teacher,
            subjects=list(subjects),
        )
        school_class.students = list(students)
        db.session.add(school_class)
        db.session.commit()
        return school_class
    return _make_class


@pytest.fixture()
def make_record(app):
    """statuses: list of (student, 'Present'|'Absent') in entry order."""
    def _make_record(school_class, statuses, on=date(2024, 3, 1), subject="Maths", session="Period 1"):
        record = AttendanceRecord(class_id=school_class.id, date=on, subject=subject, session=session)
        record.entries = [
            AttendanceEntry(
                student_id=student.id if hasattr(student, "id") else student,
                status=StatusEnum.parse(status),
                position=position,
            )
            for position, (student, status) in enumerate(statuses)
        ]
        db.session.add(record)
        db.session.commit()
        return record
    return _make_record


@pytest.fixture()
def login(client):
    def _login(user, password=PASSWORD):
        resp = client.post("/auth/login", json={"email": user.email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp
    return _login
