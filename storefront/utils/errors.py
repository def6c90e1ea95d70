# --- storefront/utils/errors.py ---
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from ..extensions import db, jwt
from .api import err


class ApiError(Exception):
    """Error carrying the HTTP status it should be answered with."""

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message=None, status_code=None, data=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.data = data


class BadRequest(ApiError):
    status_code = 400
    default_message = "Bad request"


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class Conflict(ApiError):
    status_code = 409
    default_message = "Unique constraint violation"


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal server error"


def parse_unique_violation(exc: IntegrityError):
    """Best-effort extraction of the column behind a unique violation."""
    msg = str(getattr(exc, "orig", exc))
    m = re.search(r"UNIQUE constraint failed:\s*([^.]+)\.([^\s,]+)", msg)
    if m:
        return {"table": m.group(1), "column": m.group(2)}
    m = re.search(r"Key \(([^)]+)\)=\(([^)]+)\) already exists", msg)
    if m:
        return {"column": m.group(1), "value": m.group(2)}
    return None


def conflict_from_integrity(exc: IntegrityError, fallback="Duplicate or invalid data"):
    info = parse_unique_violation(exc)
    if info:
        return Conflict(f"Duplicate {info['column']}", data={"conflicts": info})
    return Conflict(fallback)


def _safe_rollback(app):
    try:
        db.session.rollback()
    except SQLAlchemyError as e:
        app.logger.warning("session rollback failed: %s", e)


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e):
        if e.status_code >= 500:
            app.logger.error("%s", e.message)
        return err(e.message, e.status_code, e.data)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        _safe_rollback(app)
        c = conflict_from_integrity(e)
        return err(c.message, c.status_code, c.data)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return err(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        _safe_rollback(app)
        app.logger.exception("unhandled error: %s", e)
        return err(f"Internal server error: {e}", 500)


def register_jwt_handlers():
    """Route Flask-JWT-Extended failures into the standard envelope."""

    @jwt.unauthorized_loader
    def _missing(reason):
        return err("Missing Authorization token", 401)

    @jwt.invalid_token_loader
    def _invalid(reason):
        return err("Invalid or expired token", 401)

    @jwt.expired_token_loader
    def _expired(jwt_header, jwt_payload):
        return err("Invalid or expired token", 401)

    @jwt.user_lookup_error_loader
    def _lookup_failed(jwt_header, jwt_payload):
        return err("Invalid token or user no longer exists", 401)
