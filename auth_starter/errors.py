"""
Typed errors raised by the services.

Each error carries the HTTP status the API layer answers with; the mapping
to a JSON response lives in the exception handlers registered in main.py.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from auth_starter.services.otp_service import IssuanceOutcome


class AppError(Exception):
    status_code: int = 400

    def __init__(self, detail: str, status_code: int | None = None):
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail)


class ValidationError(AppError):
    """Malformed or missing input, rejected before any store access."""


class OtpValidationError(ValidationError):
    """Bad input to an OTP flow (unknown purpose or channel, missing code)."""


class UserNotFoundError(AppError):
    status_code = 404

    def __init__(self, detail: str = "User not found"):
        super().__init__(detail)


class AlreadyVerifiedError(AppError):
    pass


class OtpThrottleError(AppError):
    """Daily quota reached or minimum interval not yet elapsed."""

    status_code = 409

    def __init__(self, detail: str, retry_after_seconds: int | None = None):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(detail)


class InvalidOtpError(AppError):
    def __init__(self, detail: str = "Invalid OTP"):
        super().__init__(detail)


class ExpiredOtpError(AppError):
    def __init__(self, detail: str = "OTP has expired. Please request a new one."):
        super().__init__(detail)


class OtpDeliveryError(AppError):
    """The code was saved but the SMS/email carrying it could not be sent."""

    status_code = 502

    def __init__(self, detail: str, outcome: IssuanceOutcome):
        self.outcome = outcome
        super().__init__(detail)


class OtpPersistenceError(AppError):
    """The code could not be stored, so it cannot be validated even if it was sent."""

    status_code = 503

    def __init__(self, detail: str, outcome: IssuanceOutcome):
        self.outcome = outcome
        super().__init__(detail)


class StoreError(AppError):
    """The record store could not complete a read or write."""

    status_code = 503

    def __init__(self, detail: str = "Storage temporarily unavailable"):
        super().__init__(detail)


class DuplicateUserError(AppError):
    def __init__(self, field: str | None = None):
        self.field = field
        if field == "phone":
            detail = "User with this phone number already exists"
        elif field == "email":
            detail = "User with this email already exists"
        else:
            detail = "User with these details already exists"
        super().__init__(detail)


class InvalidCredentialsError(AppError):
    status_code = 401

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(detail)


class EmailNotVerifiedError(AppError):
    status_code = 403

    def __init__(
        self,
        detail: str = "Email not verified. Please verify your email before logging in.",
    ):
        super().__init__(detail)
