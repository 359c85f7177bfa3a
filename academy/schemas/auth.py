"""
Authentication schemas for request/response validation.

This module defines Pydantic models for authentication-related API operations:
- Registration and login
- Token responses
- Refresh and logout bodies
- Password change
"""

from pydantic import BaseModel, EmailStr, Field, field_validator

from academy.core.security import validate_password_strength


class LoginRequest(BaseModel):
    """Request schema for login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=255)


class RegisterRequest(BaseModel):
    """Request schema for student self-registration."""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=20)
    password: str = Field(..., min_length=8, max_length=255)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password strength."""
        is_valid, error_message = validate_password_strength(v)
        if not is_valid:
            raise ValueError(error_message)
        return v


class TokenResponse(BaseModel):
    """Response schema for successful authentication."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token expiration time in seconds from now")
    device_id: str | None = Field(
        default=None,
        description="Fingerprint the session is bound to; send it back as X-Device-Id",
    )


class AccessTokenResponse(BaseModel):
    """Response schema for token refresh."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class RefreshRequest(BaseModel):
    """Request schema for token refresh."""

    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    """Request schema for logout (refresh token to revoke)."""

    refresh_token: str | None = None


class PasswordChangeRequest(BaseModel):
    """Request schema for password change."""

    current_password: str = Field(..., min_length=1, max_length=255)
    new_password: str = Field(..., min_length=8, max_length=255)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        """Validate new password strength."""
        is_valid, error_message = validate_password_strength(v)
        if not is_valid:
            raise ValueError(error_message)
        return v


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
