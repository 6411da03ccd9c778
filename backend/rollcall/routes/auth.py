from flask import Blueprint, request, jsonify, current_app, make_response, url_for
from flask_jwt_extended import (
    create_access_token, create_refresh_token, jwt_required,
    get_jwt_identity, get_jwt
)
from rollcall.models import RoleEnum, TokenBlocklist, User
from rollcall.extensions import db, limiter
from rollcall.users import create_user, issue_reset_token, reset_password
from utils.audit import log_event
from utils.decorators import current_user
from datetime import datetime
import re

auth_bp = Blueprint('auth', __name__)
SELF_REGISTER_ROLES = {RoleEnum.student, RoleEnum.teacher}
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def _set_auth_cookies(response, access_token, refresh_token=None):
    # Pull `secure` and `samesite` from your Config
    secure_flag = current_app.config["JWT_COOKIE_SECURE"]
    same_site = current_app.config["JWT_COOKIE_SAMESITE"]

    response.set_cookie(
        "access_token_cookie",
        access_token,
        max_age=60 * 60,  # 1 hour
        httponly=True,
        secure=secure_flag,
        samesite=same_site,
        path="/"
    )
    if refresh_token:
        response.set_cookie(
            "refresh_token_cookie",
            refresh_token,
            max_age=60 * 60 * 24 * 7,  # 7 days
            httponly=True,
            secure=secure_flag,
            samesite=same_site,
            path="/auth/refresh"
        )
    return response


def _access_token_for(user):
    return create_access_token(
        identity=str(user.id),
        additional_claims={"role": user.role.value}
    )


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute", override_defaults=False)
def register():
    data = request.get_json(silent=True) or request.form
    email = (data.get('email') or '').strip()
    if email and not EMAIL_PATTERN.match(email):
        return jsonify({"error": "Invalid email format"}), 400

    user = create_user(data, allowed_roles=SELF_REGISTER_ROLES)
    log_event("REGISTER", user_id=user.id, ip=request.remote_addr,
              description=f"{user.email} registered as {user.role.value}")

    return jsonify({
        "message": "User created",
        "user_id": user.id,
        "role": user.role.value
    }), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("5 per minute", override_defaults=False)
def login():
    data = request.get_json(silent=True) or request.form
    email = (data.get('email') or '').strip().lower()
    password = data.get('password', '')
    ip = request.remote_addr

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    user = User.query.filter_by(email=email).first()

    if user and user.check_password(password):
        refresh_token = create_refresh_token(identity=str(user.id))
        response = make_response(jsonify({
            "message": "Login successful",
            "role": user.role.value,
            "redirect": f"/{user.role.value}/dashboard"
        }))
        _set_auth_cookies(response, _access_token_for(user), refresh_token)

        log_event("LOGIN_SUCCESS", user_id=user.id, ip=ip, description=f"{email} logged in")
        return response

    log_event("LOGIN_FAILED", ip=ip, description=f"Failed login attempt for {email}", level="WARNING")
    return jsonify({"error": "Invalid email or password"}), 401


def send_reset_link(user, link):
    # no mail transport is configured; the link goes to the application log
    current_app.logger.info("Password reset link for %s: %s", user.email, link)


@auth_bp.route("/forgot-password", methods=["POST"])
@limiter.limit("5 per minute", override_defaults=False)
def forgot_password():
    data = request.get_json(silent=True) or request.form
    email = (data.get("email") or "").strip().lower()
    if not email:
        return jsonify({"error": "Email is required"}), 400

    user = User.query.filter_by(email=email).first()
    if user:
        token = issue_reset_token(user)
        send_reset_link(user, url_for("auth.reset_password_with_token", token=token, _external=True))
        log_event("PASSWORD_RESET_REQUESTED", user_id=user.id, ip=request.remote_addr)

    # same answer either way so the endpoint does not reveal which e-mails exist
    return jsonify({"message": "If an account with that email exists, a password reset link has been sent."}), 200


@auth_bp.route("/reset-password/<token>", methods=["POST"])
@limiter.limit("5 per minute", override_defaults=False)
def reset_password_with_token(token):
    data = request.get_json(silent=True) or request.form
    user = reset_password(token, data.get("password"))
    log_event("PASSWORD_RESET", user_id=user.id, ip=request.remote_addr)
    return jsonify({"message": "Password has been reset"}), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_current_user():
    user = current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404

    return jsonify(user.to_dict()), 200


@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True, locations=["cookies"])
def refresh_access_token():
    user = current_user()
    if not user:
        return jsonify({"error": "User not found"}), 404

    response = make_response(jsonify({"message": "Token refreshed"}))
    _set_auth_cookies(response, _access_token_for(user))

    log_event("REFRESH_TOKEN", user_id=user.id, ip=request.remote_addr)
    return response


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():
    claims = get_jwt()
    user_id = get_jwt_identity()
    expires = datetime.fromtimestamp(claims["exp"])

    token_block = TokenBlocklist(jti=claims["jti"], token_type=claims.get("type", "access"),
                                 user_id=int(user_id), expires_at=expires)
    db.session.add(token_block)
    db.session.commit()

    response = make_response(jsonify({"message": "Successfully logged out"}))
    response.delete_cookie("access_token_cookie", path="/")
    response.delete_cookie("refresh_token_cookie", path="/auth/refresh")

    log_event("LOGOUT", user_id=user_id, ip=request.remote_addr)
    return response
