from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from utils.errors import AuthError, ErrorKind

logger = logging.getLogger(__name__)

# kind -> (status, public message). Messages are fixed; AuthError.detail never leaves the process.
AUTH_ERROR_RESPONSES = {
    ErrorKind.MISSING_CREDENTIAL: (400, "Missing Authorization header"),
    ErrorKind.MALFORMED_CREDENTIAL: (400, "Malformed Authorization header"),
    ErrorKind.INVALID_CREDENTIALS: (400, "Incorrect email or password"),
    ErrorKind.INVALID_SIGNATURE: (401, "Invalid token"),
    ErrorKind.EXPIRED: (401, "Token expired"),
    ErrorKind.REVOKED: (401, "Token revoked"),
    ErrorKind.UNAUTHORIZED: (401, "Unauthorized"),
    ErrorKind.FORBIDDEN: (403, "Forbidden"),
    ErrorKind.NOT_FOUND: (404, "Resource not found"),
    ErrorKind.CONFLICT: (409, "Conflict"),
    ErrorKind.HASH_FAILURE: (500, "An unexpected error occurred"),
    ErrorKind.STORE_FAILURE: (500, "An unexpected error occurred"),
}


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    @app.errorhandler(AuthError)
    def handle_auth_error(err: AuthError):
        status, message = AUTH_ERROR_RESPONSES[err.kind]
        if status >= 500:
            logger.exception("%s: %s", err.kind.value, err.detail, exc_info=err)
            return error_response("INTERNAL_ERROR", message, status)
        logger.debug("%s: %s", err.kind.value, err.detail)
        return error_response(err.kind.value, message, status)

    # 400 Bad Request (generic)
    @app.errorhandler(400)
    def bad_request(e):
        message = getattr(e, "description", "Bad request")
        return error_response("BAD_REQUEST", message, 400)

    # 403 Forbidden
    @app.errorhandler(403)
    def forbidden(e):
        message = getattr(e, "description", "Forbidden")
        return error_response("FORBIDDEN", message, 403)

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", 404)

    # 422 Unprocessable Entity (validation)
    @app.errorhandler(422)
    def unprocessable(e):
        message = getattr(e, "description", "Unprocessable entity")
        return error_response("VALIDATION_ERROR", message, 422)

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        return error_response("VALIDATION_ERROR", "Invalid input", 422, details=err.messages)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response(err.name.upper().replace(" ", "_"), err.description, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        # In dev, name the exception type; the message stays in the log
        details = None
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
