"""Error taxonomy and the JSON error envelope.

Routes and the lifecycle coordinator raise :class:`APIError` subclasses;
``register_error_handlers`` renders them, and Werkzeug's HTTP errors, as
``{"success": false, "error": {"message": ...}}``. Anything else is logged and
answered with a generic 500.
"""

from __future__ import annotations

from typing import Any

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .extensions import db


class APIError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None, details: Any = None):
        super().__init__(message or self.message)
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        error: dict[str, Any] = {"message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "error": error}


class NotFound(APIError):
    status_code = 404
    message = "Resource not found"


class Conflict(APIError):
    status_code = 409
    message = "Conflict"


class ValidationFailed(APIError):
    status_code = 400
    message = "Invalid data"


class Unauthorized(APIError):
    status_code = 401
    message = "Access token required"


class Forbidden(APIError):
    status_code = 403
    message = "Access denied. Only administrators can perform this action."


def error_response(message: str, status_code: int, details: Any = None):
    return APIError(message, status_code, details).to_dict(), status_code


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(APIError)
    def _handle_api_error(exc: APIError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):
        message = exc.description if exc.code != 404 else "Route not found"
        body, code = error_response(message, exc.code or 500)
        return jsonify(body), code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled error: %s", exc)
        body, code = error_response("Internal server error", 500)
        return jsonify(body), code
