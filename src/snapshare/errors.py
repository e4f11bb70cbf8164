"""
Domain error taxonomy.

Services raise these; the global handler in ``snapshare.middleware.error_handler``
turns them into ``{"detail": ..., "code": ...}`` JSON responses. Storage-layer
exceptions are translated into one of these before leaving a service.
"""

from __future__ import annotations


class SnapshareError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 400
    code: str = "error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InputValidationError(SnapshareError):
    """Malformed input (bad email, malformed code, weak password)."""

    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"


class NotFoundError(SnapshareError):
    """Referenced pending registration, code, target or record does not exist."""

    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ConflictError(SnapshareError):
    """Uniqueness violation (account already exists, username taken)."""

    status_code = 409
    code = "conflict"
    default_message = "Already exists"


class AlreadyExistsError(ConflictError):
    """Duplicate engagement (already liked / already saved)."""

    status_code = 400
    code = "already_exists"


class ForbiddenError(SnapshareError):
    """Operation disallowed by the target's configuration."""

    status_code = 400
    code = "forbidden"
    default_message = "Operation not allowed"


class UnauthorizedError(SnapshareError):
    """Invalid credentials, inactive account or bad session token."""

    status_code = 401
    code = "unauthorized"
    default_message = "Invalid username/email or password"


class AccountLockedError(UnauthorizedError):
    """Too many failed logins; the account is temporarily locked."""

    status_code = 429
    code = "account_locked"
    default_message = "Account temporarily locked. Try again later."


class InvalidOrExpiredCodeError(SnapshareError):
    """Verification code missing, wrong or past its expiry (never distinguished)."""

    status_code = 400
    code = "invalid_or_expired_code"
    default_message = "Invalid or expired OTP. Please request a new one."
