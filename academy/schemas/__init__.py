"""
Pydantic schemas for API responses and requests
"""
from academy.schemas.account import AccountResponse
from academy.schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    PasswordChangeRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
)
from academy.schemas.device import (
    AccountActivityResponse,
    DeviceActivityResponse,
    DeviceLimitResponse,
    DeviceLimitUpdate,
    DeviceListResponse,
    DeviceResponse,
    DeviceSettingsResponse,
    EnforcementResponse,
    EnforcementUpdate,
    ForceLogoutResponse,
    ResetAllResponse,
)

__all__ = [
    "AccessTokenResponse",
    "AccountActivityResponse",
    "AccountResponse",
    "DeviceActivityResponse",
    "DeviceLimitResponse",
    "DeviceLimitUpdate",
    "DeviceListResponse",
    "DeviceResponse",
    "DeviceSettingsResponse",
    "EnforcementResponse",
    "EnforcementUpdate",
    "ForceLogoutResponse",
    "LoginRequest",
    "LogoutRequest",
    "MessageResponse",
    "PasswordChangeRequest",
    "RefreshRequest",
    "RegisterRequest",
    "ResetAllResponse",
    "TokenResponse",
]
