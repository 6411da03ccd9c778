import re
from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from rollcall.models import SchoolClass, SessionSlot
from rollcall.submissions import (
    AttendanceKey, attendance_sheet, edit_attendance_entry,
    submit_attendance, submit_scanned_attendance,
)
from utils.audit import log_event
from utils.decorators import role_context, role_required
from utils.serialization import to_dict
from .report_views import export_response, low_attendance_response, report_response

teacher_bp = Blueprint('teacher', __name__)
ATTENDANCE_FIELD = re.compile(r"^attendance\[(.+)\]$")


def _payload():
    return request.get_json(silent=True) or request.form


def _statuses(data):
    """JSON sends {"attendance": {id: status}}; forms send one attendance[<id>] field per student."""
    statuses = data.get("attendance")
    if isinstance(statuses, dict) or not hasattr(data, "getlist"):
        return statuses
    statuses = {}
    for field, status in data.items():
        match = ATTENDANCE_FIELD.match(field)
        if match:
            statuses[match.group(1)] = status
    return statuses


def _present_ids(data):
    if hasattr(data, "getlist"):
        return data.getlist("present_students")
    present = data.get("present_students") or []
    return present if isinstance(present, list) else [present]


@teacher_bp.route('/dashboard', methods=['GET'])
@jwt_required()
@role_required('teacher')
def dashboard():
    ctx = role_context()
    classes = SchoolClass.query.filter_by(teacher_id=ctx.user_id).order_by(SchoolClass.name).all()
    return jsonify({"classes": [c.to_dict(include_students=True) for c in classes]}), 200


@teacher_bp.route('/attendance', methods=['GET'])
@jwt_required()
@role_required('teacher')
def attendance_options():
    ctx = role_context()
    classes = SchoolClass.query.filter_by(teacher_id=ctx.user_id).order_by(SchoolClass.name).all()
    sessions = SessionSlot.query.order_by(SessionSlot.name).all()
    return jsonify({
        "classes": [c.to_dict() for c in classes],
        "sessions": [to_dict(s) for s in sessions]
    }), 200


@teacher_bp.route('/attendance/sheet', methods=['POST'])
@jwt_required()
@role_required('teacher', 'admin')
def get_attendance_sheet():
    key = AttendanceKey.from_data(_payload())
    return jsonify(attendance_sheet(role_context(), key)), 200


@teacher_bp.route('/attendance/submit', methods=['POST'])
@jwt_required()
@role_required('teacher', 'admin')
def submit():
    data = _payload()
    key = AttendanceKey.from_data(data)
    statuses = _statuses(data)
    if not isinstance(statuses, dict) or not statuses:
        return jsonify({"error": "attendance must map student ids to a status"}), 400

    ctx = role_context()
    record = submit_attendance(ctx, key, statuses)
    log_event("ATTENDANCE_SUBMITTED", user_id=ctx.user_id, ip=request.remote_addr,
              description=f"{key!r} ({len(record.entries)} entries)")
    return jsonify({"message": "Attendance recorded", "record": record.to_dict()}), 200


@teacher_bp.route('/attendance/qr-submit', methods=['POST'])
@jwt_required()
@role_required('teacher', 'admin')
def submit_qr():
    data = _payload()
    key = AttendanceKey.from_data(data)

    ctx = role_context()
    record = submit_scanned_attendance(ctx, key, _present_ids(data))
    log_event("ATTENDANCE_SCANNED", user_id=ctx.user_id, ip=request.remote_addr,
              description=f"{key!r} ({len(record.entries)} entries)")
    return jsonify({"message": "Attendance recorded", "record": record.to_dict()}), 200


@teacher_bp.route('/attendance/<record_id>/entries/<entry_id>', methods=['PUT'])
@jwt_required()
@role_required('teacher', 'admin')
def edit_entry(record_id, entry_id):
    ctx = role_context()
    record = edit_attendance_entry(ctx, record_id, entry_id, _payload().get("status"))
    log_event("ATTENDANCE_EDITED", user_id=ctx.user_id, ip=request.remote_addr,
              description=f"record {record_id} entry {entry_id}")
    return jsonify({"message": "Attendance updated", "record": record.to_dict()}), 200


@teacher_bp.route('/reports', methods=['GET'])
@jwt_required()
@role_required('teacher')
def reports():
    return report_response(role_context())


@teacher_bp.route('/reports/export', methods=['GET'])
@jwt_required()
@role_required('teacher')
def export_report():
    return export_response(role_context())


@teacher_bp.route('/low-attendance', methods=['GET'])
@jwt_required()
@role_required('teacher')
def low_attendance():
    return low_attendance_response(role_context())
