import base64
from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
import qrcode
import qrcode.image.svg
from rollcall.reports import student_summary
from rollcall.users import change_password, update_user
from utils.audit import log_event
from utils.decorators import current_user, role_required

student_bp = Blueprint('student', __name__)


def qr_data_url(text):
    """SVG QR code for text as a data: URL."""
    image = qrcode.make(text, image_factory=qrcode.image.svg.SvgPathImage)
    encoded = base64.b64encode(image.to_string()).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


@student_bp.route('/dashboard', methods=['GET'])
@jwt_required()
@role_required('student')
def dashboard():
    user = current_user()
    summary = student_summary(user.id)
    summary["user"] = user.to_dict()
    return jsonify(summary), 200


@student_bp.route('/qrcode', methods=['GET'])
@jwt_required()
@role_required('student')
def get_qr_code():
    user = current_user()
    if not user.external_id:
        return jsonify({"error": "Student ID not found"}), 400
    return jsonify({"qr_code_url": qr_data_url(user.external_id)}), 200


@student_bp.route('/profile', methods=['GET'])
@jwt_required()
@role_required('student')
def profile():
    return jsonify(current_user().to_dict()), 200


@student_bp.route('/profile', methods=['PUT'])
@jwt_required()
@role_required('student')
def update_profile():
    data = request.get_json(silent=True) or request.form
    allowed = {k: data.get(k) for k in ("name", "email") if k in data}
    if not allowed:
        return jsonify({"error": "No input data provided"}), 400

    user = update_user(current_user(), allowed)
    return jsonify({"message": "Profile updated", "user": user.to_dict()}), 200


@student_bp.route('/profile/password', methods=['POST'])
@jwt_required()
@role_required('student')
def update_password():
    data = request.get_json(silent=True) or request.form
    user = current_user()
    change_password(user, data.get("current_password"), data.get("new_password"))
    log_event("PASSWORD_CHANGED", user_id=user.id, ip=request.remote_addr)
    return jsonify({"message": "Password updated"}), 200
