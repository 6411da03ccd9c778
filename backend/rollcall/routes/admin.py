from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import IntegrityError
from rollcall.classes import create_class, delete_class, get_class, update_class
from rollcall.errors import ConflictError, NotFoundError, ValidationError
from rollcall.extensions import db, settings_service
from rollcall.models import SchoolClass, SessionSlot, User
from rollcall.reports import dashboard_summary, get_low_attendance
from rollcall.settings import LOW_ATTENDANCE_THRESHOLD
from rollcall.users import create_user, delete_user, get_user, parse_role, update_user
from utils.audit import log_event
from utils.decorators import role_context, role_required
from utils.pagination import apply_pagination_and_search
from utils.serialization import to_dict
from .report_views import export_response, low_attendance_response, report_response

admin_bp = Blueprint('admin', __name__)


def _payload():
    return request.get_json(silent=True) or request.form


@admin_bp.route('/dashboard', methods=['GET'])
@jwt_required()
@role_required('admin')
def dashboard():
    summary = dashboard_summary()
    summary["low_attendance_students"] = get_low_attendance(role_context())
    return jsonify(summary), 200


# ---- Users ----

@admin_bp.route('/users', methods=['GET'])
@jwt_required()
@role_required('admin')
def list_users():
    page = request.args.get("page", 1, type=int)
    per_page = request.args.get("per_page", 20, type=int)
    search_term = request.args.get("search", type=str)
    role = request.args.get("role")

    query = User.query
    if role:
        query = query.filter(User.role == parse_role(role))

    paginated = apply_pagination_and_search(
        query.order_by(User.name),
        User,
        search_term,
        ["name", "email", "external_id"],
        page,
        per_page
    )

    return jsonify({
        "users": [u.to_dict() for u in paginated.items],
        "total": paginated.total,
        "page": paginated.page,
        "pages": paginated.pages
    }), 200


@admin_bp.route('/users', methods=['POST'])
@jwt_required()
@role_required('admin')
def add_user():
    user = create_user(_payload())
    log_event("USER_CREATED", user_id=role_context().user_id, ip=request.remote_addr,
              description=f"Created {user.role.value} {user.email}")
    return jsonify({"message": "User created successfully", "user": user.to_dict()}), 201


@admin_bp.route('/users/<int:user_id>', methods=['GET'])
@jwt_required()
@role_required('admin')
def get_user_details(user_id):
    return jsonify(get_user(user_id).to_dict()), 200


@admin_bp.route('/users/<int:user_id>', methods=['PUT'])
@jwt_required()
@role_required('admin')
def edit_user(user_id):
    data = _payload()
    if not data:
        return jsonify({"error": "No input data provided"}), 400

    user = update_user(get_user(user_id), data)
    return jsonify({"message": "User updated successfully", "user": user.to_dict()}), 200


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
@jwt_required()
@role_required('admin')
def remove_user(user_id):
    user = get_user(user_id)
    if user.id == role_context().user_id:
        return jsonify({"error": "You cannot delete your own account"}), 400

    delete_user(user)
    log_event("USER_DELETED", user_id=role_context().user_id, ip=request.remote_addr,
              description=f"Deleted user {user_id}")
    return jsonify({"message": "User deleted"}), 200


# ---- Classes ----

@admin_bp.route('/classes', methods=['GET'])
@jwt_required()
@role_required('admin')
def list_classes():
    classes = SchoolClass.query.order_by(SchoolClass.name).all()
    return jsonify([c.to_dict() for c in classes]), 200


@admin_bp.route('/classes', methods=['POST'])
@jwt_required()
@role_required('admin')
def add_class():
    school_class = create_class(_payload())
    return jsonify({"message": "Class created", "class": school_class.to_dict()}), 201


@admin_bp.route('/classes/<int:class_id>', methods=['GET'])
@jwt_required()
@role_required('admin')
def get_class_details(class_id):
    return jsonify(get_class(class_id).to_dict(include_students=True)), 200


@admin_bp.route('/classes/<int:class_id>', methods=['PUT'])
@jwt_required()
@role_required('admin')
def edit_class(class_id):
    school_class = update_class(get_class(class_id), _payload())
    return jsonify({"message": "Class updated", "class": school_class.to_dict()}), 200


@admin_bp.route('/classes/<int:class_id>', methods=['DELETE'])
@jwt_required()
@role_required('admin')
def remove_class(class_id):
    delete_class(get_class(class_id))
    log_event("CLASS_DELETED", user_id=role_context().user_id, ip=request.remote_addr,
              description=f"Deleted class {class_id} and its attendance")
    return jsonify({"message": "Class deleted"}), 200


# ---- Sessions ----

@admin_bp.route('/sessions', methods=['GET'])
@jwt_required()
@role_required('admin')
def list_sessions():
    sessions = SessionSlot.query.order_by(SessionSlot.name).all()
    return jsonify([to_dict(s) for s in sessions]), 200


@admin_bp.route('/sessions', methods=['POST'])
@jwt_required()
@role_required('admin')
def add_session():
    name = (_payload().get('name') or '').strip()
    if not name:
        raise ValidationError("Missing required name")
    if SessionSlot.query.filter_by(name=name).first():
        raise ConflictError(f"Session '{name}' already exists")

    session_slot = SessionSlot(name=name)
    db.session.add(session_slot)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Session '{name}' already exists")
    return jsonify(to_dict(session_slot)), 201


@admin_bp.route('/sessions/<int:session_id>', methods=['DELETE'])
@jwt_required()
@role_required('admin')
def remove_session(session_id):
    session_slot = db.session.get(SessionSlot, session_id)
    if not session_slot:
        raise NotFoundError("Session not found")
    db.session.delete(session_slot)
    db.session.commit()
    return jsonify({"message": "Session deleted"}), 200


# ---- Reports ----

@admin_bp.route('/reports', methods=['GET'])
@jwt_required()
@role_required('admin')
def reports():
    return report_response(role_context())


@admin_bp.route('/reports/export', methods=['GET'])
@jwt_required()
@role_required('admin')
def export_report():
    return export_response(role_context())


@admin_bp.route('/low-attendance', methods=['GET'])
@jwt_required()
@role_required('admin')
def low_attendance():
    return low_attendance_response(role_context())


# ---- Settings ----

@admin_bp.route('/settings', methods=['GET'])
@jwt_required()
@role_required('admin')
def get_settings():
    settings = settings_service.all()
    settings[LOW_ATTENDANCE_THRESHOLD] = settings_service.low_attendance_threshold()
    return jsonify(settings), 200


@admin_bp.route('/settings', methods=['POST'])
@jwt_required()
@role_required('admin')
def update_settings():
    raw = _payload().get(LOW_ATTENDANCE_THRESHOLD)
    try:
        threshold = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{LOW_ATTENDANCE_THRESHOLD} must be an integer")
    if not 0 <= threshold <= 100:
        raise ValidationError(f"{LOW_ATTENDANCE_THRESHOLD} must be between 0 and 100")

    settings_service.update(LOW_ATTENDANCE_THRESHOLD, threshold)
    log_event("SETTINGS_UPDATED", user_id=role_context().user_id, ip=request.remote_addr,
              description=f"{LOW_ATTENDANCE_THRESHOLD}={threshold}")
    return jsonify({LOW_ATTENDANCE_THRESHOLD: threshold}), 200
