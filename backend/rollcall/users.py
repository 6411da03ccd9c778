import hashlib
from datetime import timedelta
from flask import current_app
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy.exc import IntegrityError
from rollcall.errors import ConflictError, NotFoundError, ValidationError
from rollcall.extensions import db
from rollcall.models import RoleEnum, User

RESET_PURPOSE = "password_reset"


def parse_role(value):
    try:
        return RoleEnum((value or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid role '{value}'")


def _check_unique(email=None, external_id=None, exclude_id=None):
    if email:
        existing = User.query.filter_by(email=email).first()
        if existing and existing.id != exclude_id:
            raise ConflictError("Email already exists")
    if external_id:
        existing = User.query.filter_by(external_id=external_id).first()
        if existing and existing.id != exclude_id:
            raise ConflictError("External ID already exists")


def create_user(data, allowed_roles=None):
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip().lower()
    external_id = (data.get('external_id') or '').strip()
    password = data.get('password') or ''

    missing = [f for f, v in (('name', name), ('email', email), ('external_id', external_id),
                              ('password', password)) if not v]
    if missing:
        raise ValidationError(f"Missing required fields: {missing}")

    role = parse_role(data.get('role') or 'student')
    if allowed_roles is not None and role not in allowed_roles:
        raise ValidationError(f"Role '{role.value}' cannot be assigned here")

    _check_unique(email, external_id)

    user = User(name=name, email=email, external_id=external_id, role=role)
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("User already exists")
    return user


def get_user(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def update_user(user, data):
    if 'name' in data:
        name = (data.get('name') or '').strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        user.name = name
    if 'email' in data:
        email = (data.get('email') or '').strip().lower()
        if not email:
            raise ValidationError("Email cannot be empty")
        _check_unique(email=email, exclude_id=user.id)
        user.email = email
    if 'external_id' in data:
        external_id = (data.get('external_id') or '').strip()
        if not external_id:
            raise ValidationError("External ID cannot be empty")
        _check_unique(external_id=external_id, exclude_id=user.id)
        user.external_id = external_id
    if 'role' in data:
        user.role = parse_role(data.get('role'))
    if data.get('password'):
        user.set_password(data['password'])

    db.session.commit()
    return user


def change_password(user, current_password, new_password):
    if not user.check_password(current_password or ''):
        raise ValidationError("Incorrect current password")
    if not new_password:
        raise ValidationError("New password is required")
    user.set_password(new_password)
    db.session.commit()


def _password_fingerprint(user):
    return hashlib.sha256(user.password_hash.encode()).hexdigest()[:16]


def issue_reset_token(user):
    """
    Short-lived signed token for a password reset. It embeds a fingerprint of
    the current password hash, so it stops working once the password changes.
    """
    hours = current_app.config.get("PASSWORD_RESET_EXPIRES_HOURS", 1)
    return create_access_token(
        identity=str(user.id),
        expires_delta=timedelta(hours=hours),
        additional_claims={"purpose": RESET_PURPOSE, "pwd": _password_fingerprint(user)},
    )


def reset_password(token, new_password):
    if not new_password:
        raise ValidationError("New password is required")
    try:
        claims = decode_token(token)
    except (JWTExtendedException, PyJWTError):
        raise ValidationError("Reset link is invalid or has expired")

    if claims.get("purpose") != RESET_PURPOSE:
        raise ValidationError("Reset link is invalid or has expired")
    user = db.session.get(User, int(claims["sub"]))
    if not user or claims.get("pwd") != _password_fingerprint(user):
        raise ValidationError("Reset link is invalid or has expired")

    user.set_password(new_password)
    db.session.commit()
    return user


def delete_user(user):
    if user.taught_classes:
        raise ConflictError("Reassign this teacher's classes before deleting them")
    db.session.delete(user)
    db.session.commit()
