from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from rollcall.extensions import db


class AttendanceError(Exception):
    """Base class for errors surfaced to API callers as {"error": message}."""

    status_code = 500
    default_message = "Server Error"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(AttendanceError):
    status_code = 400
    default_message = "Invalid request"


class Forbidden(AttendanceError):
    status_code = 403
    default_message = "Access forbidden"


class NotFoundError(AttendanceError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AttendanceError):
    status_code = 409
    default_message = "Already exists"


class StoreError(AttendanceError):
    status_code = 500
    default_message = "Database error"


def store_failure(exc, context):
    """Roll back the session, log the driver error and return an opaque StoreError."""
    db.session.rollback()
    current_app.logger.error("Store failure during %s: %s", context, exc, exc_info=exc)
    return StoreError()


def register_error_handlers(app):
    @app.errorhandler(AttendanceError)
    def handle_attendance_error(error):
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(error):
        failure = store_failure(error, "request")
        return jsonify({"error": failure.message}), failure.status_code
