"""
Domain exceptions raised by services and translated into the standard error
envelope by the exception handlers registered in aurora.api.main.
"""

from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base class for application errors carrying an HTTP status."""

    status_code = 500
    error_type = "application_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class BadRequestError(AppError):
    status_code = 400
    error_type = "bad_request"


class UnauthorizedError(AppError):
    status_code = 401
    error_type = "unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    error_type = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_type = "not_found"


class ConflictError(AppError):
    status_code = 409
    error_type = "conflict"


class ServiceFailureError(AppError):
    """An external dependency (mail, storage) failed; the operation was rolled back."""

    status_code = 500
    error_type = "service_failure"
