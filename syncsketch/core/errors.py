"""
Error taxonomy shared by services and the HTTP layer.

Services raise these; the exception handlers registered in app.py turn them
into JSON responses with the matching status code.
"""

from __future__ import annotations

from typing import Optional


class AppError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class ValidationError(AppError):
    status_code = 400

    def __init__(self, errors: dict[str, str], message: str = "Validation error"):
        super().__init__(message, errors)


class BadRequestError(AppError):
    status_code = 400


class InvalidOtpError(BadRequestError):
    def __init__(self, message: str = "Invalid or expired OTP"):
        super().__init__(message)


class UnauthorizedError(AppError):
    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class MailDeliveryError(AppError):
    """SMTP transport failed; surfaces as an internal error."""

    status_code = 500
