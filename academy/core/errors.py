"""
Operational error taxonomy for authentication and device policy.

Every error is an HTTPException subclass, so it can be raised from services,
dependencies and route handlers alike. Each class carries a machine-readable
``code`` that the application exception handler adds to the response body:

    {"detail": "Session invalidated due to device reset or device change",
     "code": "DEVICE_SESSION_INVALID"}
"""

from typing import Any

from fastapi import HTTPException, status


class AcademyError(HTTPException):
    """Base class for expected, user-facing errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    message: str = "Request could not be processed"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or self.message,
            headers=headers,
        )

    def to_response(self) -> dict[str, Any]:
        return {"detail": self.detail, "code": self.code}


class InvalidCredentials(AcademyError):
    # Same message for unknown email and wrong password
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class NotAuthenticated(AcademyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"
    message = "Not authenticated"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class InvalidToken(AcademyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_TOKEN"
    message = "Invalid or expired token. Please login again."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class AccountBlocked(AcademyError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "ACCOUNT_BLOCKED"
    message = "Your account has been blocked. Please contact admin."


class DeviceBlocked(AcademyError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "DEVICE_BLOCKED"
    message = "This device has been blocked by admin. Please contact support."


class DeviceLimitExceeded(AcademyError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "DEVICE_LIMIT_EXCEEDED"
    message = "Device limit reached. Please contact admin to reset your device."

    def __init__(self, max_devices: int | None = None) -> None:
        detail = None
        if max_devices is not None:
            detail = (
                f"Device limit reached. You can only access from {max_devices} device(s). "
                "Please contact admin to reset your device."
            )
        super().__init__(detail)
        self.max_devices = max_devices


class SessionExpired(AcademyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "SESSION_EXPIRED"
    message = "Session expired. Please login again."


class SessionExpiredElsewhere(AcademyError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "SESSION_EXPIRED_ELSEWHERE"
    message = "Session expired on another device. Please login again."


class DeviceSessionInvalid(AcademyError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "DEVICE_SESSION_INVALID"
    message = "Session invalidated due to device reset or device change"


class InvalidPolicyValue(AcademyError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_POLICY_VALUE"
    message = "Device limit must be 1 or 2"


class AdminRequired(AcademyError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "ADMIN_REQUIRED"
    message = "Admin privileges required"


class NotAStudentAccount(AcademyError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "NOT_A_STUDENT_ACCOUNT"
    message = "This action can only be performed on student accounts"


class AccountNotFound(AcademyError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "ACCOUNT_NOT_FOUND"
    message = "User not found"


class DeviceNotFound(AcademyError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "DEVICE_NOT_FOUND"
    message = "Device not found"


class EmailAlreadyRegistered(AcademyError):
    status_code = status.HTTP_409_CONFLICT
    code = "EMAIL_ALREADY_REGISTERED"
    message = "User with this email already exists"


class IncorrectPassword(AcademyError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INCORRECT_PASSWORD"
    message = "Current password is incorrect"
