from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError


class ApiError(Exception):
    """Domain error carrying its HTTP status and stable error code."""

    status = 500
    code = "INTERNAL_ERROR"
    message = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidCredentials(ApiError):
    status = 401
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class EmailNotConfirmed(ApiError):
    status = 403
    code = "EMAIL_NOT_CONFIRMED"
    message = "Please confirm your email address"


class EmailAlreadyExists(ApiError):
    status = 409
    code = "EMAIL_ALREADY_EXISTS"
    message = "An account with this email already exists"


class InvalidAuthCode(ApiError):
    status = 400
    code = "INVALID_AUTH_CODE"
    message = "Invalid authentication code"


class AuthCodeExpired(ApiError):
    status = 400
    code = "AUTH_CODE_EXPIRED"
    message = "Authentication code has expired"


class TokenExpired(ApiError):
    status = 401
    code = "TOKEN_EXPIRED"
    message = "Token has expired"


class TokenInvalid(ApiError):
    status = 401
    code = "TOKEN_INVALID"
    message = "Invalid token"


class Unauthorized(ApiError):
    status = 401
    code = "UNAUTHORIZED"
    message = "Unauthorized"


class NotFound(ApiError):
    status = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class DatabaseError(ApiError):
    code = "DATABASE_ERROR"
    message = "Database error"


class EmailServiceError(ApiError):
    code = "EMAIL_SERVICE_ERROR"
    message = "Email service error"


class InternalError(ApiError):
    code = "INTERNAL_ERROR"
    message = "Internal error"


def error_response(code: str, message: str, status: int):
    return jsonify({"error": {"code": code, "message": message}}), status


def _field_errors(messages, prefix: str = ""):
    # marshmallow nests messages by field; flatten to [{field, message}]
    if isinstance(messages, dict):
        for key, value in messages.items():
            field = prefix if key == "_schema" else (f"{prefix}.{key}" if prefix else str(key))
            yield from _field_errors(value, field)
    elif isinstance(messages, (list, tuple)):
        for value in messages:
            yield from _field_errors(value, prefix)
    else:
        yield {"field": prefix, "message": str(messages)}


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        if err.status >= 500:
            current_app.logger.error("%s: %s", err.code, err.message)
        return error_response(err.code, err.message, err.status)

    # marshmallow validation errors map to 400 with field-level details
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return jsonify({"errors": list(_field_errors(err.messages))}), 400

    # Any database failure becomes DATABASE_ERROR; the session is rolled back by its owner
    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(err: SQLAlchemyError):
        current_app.logger.exception("Database error", exc_info=err)
        return error_response(DatabaseError.code, DatabaseError.message, DatabaseError.status)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = err.code or 400
        if status == 404:
            return error_response(NotFound.code, NotFound.message, NotFound.status)
        if status == 405:
            return error_response("METHOD_NOT_ALLOWED", err.description, 405)
        return error_response("BAD_REQUEST", err.description, status)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        current_app.logger.exception("Unhandled exception", exc_info=err)
        return error_response(ApiError.code, ApiError.message, ApiError.status)
