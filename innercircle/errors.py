from __future__ import annotations

import logging

import sentry_sdk
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger("innercircle.errors")


class FileServiceError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code


class BadRequest(FileServiceError):
    status_code = 400
    default_message = "Bad request"


class AccessDenied(FileServiceError):
    status_code = 403
    default_message = "Access denied"


class NotFound(FileServiceError):
    status_code = 404
    default_message = "Not found"


class PayloadTooLarge(FileServiceError):
    status_code = 413
    default_message = "File exceeds the maximum allowed size"


class Conflict(FileServiceError):
    status_code = 409
    default_message = "Already exists"


class RangeNotSatisfiable(FileServiceError):
    status_code = 416
    default_message = "Requested range not satisfiable"

    def __init__(self, size: int, message: str | None = None):
        super().__init__(message)
        self.size = size


class InternalError(FileServiceError):
    status_code = 500


def register_error_handlers(app) -> None:
    @app.errorhandler(FileServiceError)
    def _handle_file_service_error(exc: FileServiceError):
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc)
            message = InternalError.default_message
        else:
            message = exc.message
        resp = jsonify({"error": message})
        resp.status_code = exc.status_code
        if isinstance(exc, RangeNotSatisfiable):
            resp.headers["Content-Range"] = f"bytes */{exc.size}"
        return resp

    @app.errorhandler(Exception)
    def _handle_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Unhandled error: %s", exc)
        sentry_sdk.capture_exception(exc)
        resp = jsonify({"error": InternalError.default_message})
        resp.status_code = 500
        return resp
