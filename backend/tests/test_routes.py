from datetime import date
from unittest.mock import patch
import pytest
from flask_jwt_extended import create_access_token

from rollcall.errors import ValidationError
from rollcall.models import AttendanceRecord
from rollcall.users import issue_reset_token, reset_password


@pytest.fixture()
def school(make_user, make_class, make_record):
    admin = make_user("admin")
    teacher = make_user("teacher")
    other = make_user("teacher")
    s1 = make_user("student", name="Ada")
    s2 = make_user("student", name="Ben")
    mine = make_class(teacher, [s1, s2], name="Physics")
    theirs = make_class(other, [s1], name="Biology")
    make_record(mine, [(s1, "Present"), (s2, "Absent")], on=date(2024, 3, 1))
    make_record(theirs, [(s1, "Absent")], on=date(2024, 3, 2))
    return {"admin": admin, "teacher": teacher, "other": other, "s1": s1, "s2": s2,
            "mine": mine, "theirs": theirs}


def test_home(client):
    resp = client.get("/")
    assert resp.status_code == 200


def test_requires_login(client, school):
    assert client.get("/admin/reports").status_code == 401


def test_login_sets_cookie_and_me(client, school, login):
    resp = login(school["teacher"])
    assert resp.get_json()["redirect"] == "/teacher/dashboard"

    me = client.get("/auth/me").get_json()
    assert me["id"] == school["teacher"].id
    assert me["role"] == "teacher"


def test_bad_password(client, school):
    resp = client.post("/auth/login", json={"email": school["admin"].email, "password": "nope"})
    assert resp.status_code == 401


def test_logout_revokes_token(client, school, login):
    login(school["admin"])
    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_register_cannot_create_admin(client):
    resp = client.post("/auth/register", json={
        "name": "Eve", "email": "eve@example.com", "external_id": "E-1",
        "password": "pw", "role": "admin",
    })
    assert resp.status_code == 400


def test_register_duplicate_email_conflicts(client, school):
    resp = client.post("/auth/register", json={
        "name": "Copy", "email": school["s1"].email, "external_id": "NEW-1", "password": "pw",
    })
    assert resp.status_code == 409


def test_role_guard(client, school, login):
    login(school["teacher"])
    assert client.get("/admin/reports").status_code == 403


def test_admin_report(client, school, login):
    login(school["admin"])

    data = client.get("/admin/reports").get_json()

    assert data["count"] == 3
    assert data["records"][0]["date"] == "2024-03-02"


def test_teacher_report_is_scoped(client, school, login):
    login(school["teacher"])

    own = client.get("/teacher/reports").get_json()
    foreign = client.get(f"/teacher/reports?class_id={school['theirs'].id}").get_json()

    assert {r["class_name"] for r in own["records"]} == {"Physics"}
    assert foreign["records"] == []


def test_malformed_filter_is_400(client, school, login):
    login(school["admin"])
    assert client.get("/admin/reports?start_date=2024-02-30").status_code == 400
    assert client.get("/admin/reports?class_id=abc").status_code == 400
    assert client.get("/admin/reports?class_id=99999999999999999999").status_code == 400


def test_report_as_html(client, school, login):
    login(school["admin"])

    resp = client.get("/admin/reports?format=html")

    assert resp.status_code == 200
    assert resp.mimetype == "text/html"
    assert b"<table" in resp.data


def test_teacher_export_uses_flags(client, school, login):
    login(school["teacher"])

    resp = client.get("/teacher/reports/export")

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "teacher_report_" in resp.headers["Content-Disposition"]
    lines = resp.data.decode().splitlines()
    assert lines[0] == "Date,Student Name,Student ID,Class,Subject,Session,Status"
    assert [line.rsplit(",", 1)[1] for line in lines[1:]] == ["1", "0"]


def test_admin_export_uses_words(client, school, login):
    login(school["admin"])

    resp = client.get("/admin/reports/export")

    assert "admin_report_" in resp.headers["Content-Disposition"]
    assert b",Present" in resp.data


def test_qr_submit_and_edit(client, school, login):
    login(school["teacher"])
    s1, s2 = school["s1"], school["s2"]

    resp = client.post("/teacher/attendance/qr-submit", json={
        "class_id": school["mine"].id, "date": "2024-03-05", "subject": "Maths",
        "session": "Period 2", "present_students": [str(s2.id)],
    })
    assert resp.status_code == 200
    record = resp.get_json()["record"]
    assert [(e["student_id"], e["status"]) for e in record["entries"]] == [
        (s1.id, "Absent"), (s2.id, "Present")]

    entry_id = record["entries"][0]["id"]
    resp = client.put(f"/teacher/attendance/{record['id']}/entries/{entry_id}", json={"status": "Present"})
    assert resp.status_code == 200
    assert resp.get_json()["record"]["entries"][0]["status"] == "Present"


def test_submit_for_foreign_class_is_forbidden(client, school, login):
    login(school["teacher"])

    resp = client.post("/teacher/attendance/submit", json={
        "class_id": school["theirs"].id, "date": "2024-03-05", "subject": "Maths",
        "session": "Period 1", "attendance": {str(school["s1"].id): "Present"},
    })

    assert resp.status_code == 403
    assert AttendanceRecord.query.count() == 2


def test_low_attendance_endpoint(client, school, login):
    login(school["admin"])

    data = client.get("/admin/low-attendance").get_json()

    assert data["threshold"] == 75
    assert [s["name"] for s in data["students"]] == ["Ben", "Ada"]


def test_settings_update_changes_threshold(client, school, login):
    login(school["admin"])

    assert client.post("/admin/settings", json={"lowAttendanceThreshold": 40}).status_code == 200
    assert client.get("/admin/settings").get_json()["lowAttendanceThreshold"] == 40
    assert client.post("/admin/settings", json={"lowAttendanceThreshold": "high"}).status_code == 400


def test_duplicate_class_and_session_conflict(client, school, login):
    login(school["admin"])

    resp = client.post("/admin/classes", json={"name": "Physics", "teacher_id": school["teacher"].id})
    assert resp.status_code == 409

    assert client.post("/admin/sessions", json={"name": "Period 9"}).status_code == 201
    assert client.post("/admin/sessions", json={"name": "Period 9"}).status_code == 409


def test_delete_class_cascades(client, school, login):
    login(school["admin"])

    assert client.delete(f"/admin/classes/{school['mine'].id}").status_code == 200
    assert AttendanceRecord.query.count() == 1


def test_student_dashboard_and_qr(client, school, login):
    login(school["s1"])

    summary = client.get("/student/dashboard").get_json()
    assert summary["overall_percentage"] == 50.0

    qr = client.get("/student/qrcode").get_json()
    assert qr["qr_code_url"].startswith("data:image/svg+xml;base64,")

    assert client.get("/admin/reports").status_code == 403


def test_student_password_change(client, school, login):
    login(school["s1"])

    bad = client.post("/student/profile/password", json={"current_password": "wrong", "new_password": "x"})
    good = client.post("/student/profile/password",
                       json={"current_password": "secret-pass", "new_password": "new-pass"})

    assert bad.status_code == 400
    assert good.status_code == 200


def test_form_encoded_submit(client, school, login):
    login(school["teacher"])
    s1, s2 = school["s1"], school["s2"]

    resp = client.post("/teacher/attendance/submit", data={
        "class_id": str(school["mine"].id), "date": "2024-03-06", "subject": "Maths",
        "session": "Period 1", f"attendance[{s2.id}]": "Absent", f"attendance[{s1.id}]": "Present",
    })

    assert resp.status_code == 200
    entries = resp.get_json()["record"]["entries"]
    assert [(e["student_id"], e["status"]) for e in entries] == [(s1.id, "Present"), (s2.id, "Absent")]


def test_form_submit_without_statuses_is_400(client, school, login):
    login(school["teacher"])

    resp = client.post("/teacher/attendance/submit", data={
        "class_id": str(school["mine"].id), "date": "2024-03-06", "subject": "Maths", "session": "Period 1",
    })

    assert resp.status_code == 400


def test_forgot_and_reset_password(client, school):
    user = school["s1"]

    with patch("rollcall.routes.auth.send_reset_link") as send:
        resp = client.post("/auth/forgot-password", json={"email": user.email})
    assert resp.status_code == 200
    sent_to, link = send.call_args[0]
    assert sent_to.id == user.id
    token = link.rsplit("/", 1)[1]

    assert client.post(f"/auth/reset-password/{token}", json={"password": "brand-new"}).status_code == 200
    assert client.post("/auth/login", json={"email": user.email, "password": "brand-new"}).status_code == 200
    # the fingerprint of the old password no longer matches
    assert client.post(f"/auth/reset-password/{token}", json={"password": "again"}).status_code == 400


def test_forgot_password_hides_unknown_emails(client, school):
    with patch("rollcall.routes.auth.send_reset_link") as send:
        resp = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})

    assert resp.status_code == 200
    send.assert_not_called()


def test_reset_rejects_tokens_that_are_not_reset_tokens(app, school):
    session_token = create_access_token(identity=str(school["s1"].id))

    with pytest.raises(ValidationError):
        reset_password(session_token, "whatever")
    with pytest.raises(ValidationError):
        reset_password("not-a-token", "whatever")
    with pytest.raises(ValidationError):
        reset_password(issue_reset_token(school["s1"]), "")
