"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"


class _EmailBody(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class RegisterRequest(_EmailBody):
    """Start a registration. Nothing is created until the emailed code is confirmed."""

    username: str = Field(..., min_length=3, max_length=32, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=1, max_length=128)


class VerifyRegistrationRequest(_EmailBody):
    """Confirm a registration with the emailed code."""

    otp: str = Field(..., min_length=1, max_length=16)


class ResendRegistrationRequest(_EmailBody):
    """Re-issue the registration code."""


class UpdatePendingEmailRequest(BaseModel):
    """Move a pending registration to another email address."""

    current_email: EmailStr = Field(..., alias="currentEmail")
    new_email: EmailStr = Field(..., alias="newEmail")

    model_config = {"populate_by_name": True}

    @field_validator("current_email", "new_email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class UpdatePendingUsernameRequest(_EmailBody):
    """Rename a pending registration."""

    new_username: str = Field(
        ..., alias="newUsername", min_length=3, max_length=32, pattern=USERNAME_PATTERN
    )

    model_config = {"populate_by_name": True}


class PendingRegistrationResponse(BaseModel):
    message: str
    email: str
    username: str


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Login with username or email + password."""

    username_or_email: str = Field(..., alias="usernameOrEmail", min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)

    model_config = {"populate_by_name": True}


class AccountResponse(BaseModel):
    """Public view of an account."""

    id: str
    username: str
    email: str
    is_active: bool
    activated_at: datetime | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """Token response returned after a successful login."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountResponse


class ActivatedAccountResponse(BaseModel):
    message: str
    user: AccountResponse


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


class ForgotPasswordRequest(_EmailBody):
    """Request a password reset code."""


class VerifyResetCodeRequest(_EmailBody):
    """Check a reset code without using it."""

    code: str = Field(..., min_length=1, max_length=16)


class ResetPasswordRequest(_EmailBody):
    """Reset password with a valid code."""

    code: str = Field(..., min_length=1, max_length=16)
    new_password: str = Field(..., alias="newPassword", min_length=1, max_length=128)

    model_config = {"populate_by_name": True}


class MessageResponse(BaseModel):
    message: str
