"""
Device policy schemas.

Request bodies and responses for the admin device endpoints and the
student's own device list.
"""

from pydantic import BaseModel, Field

from academy.models.device import UserDeviceBase
from academy.schemas.base import UTCDatetime, UTCDatetimeOptional


class DeviceResponse(UserDeviceBase):
    """A device record as shown to admins and to the owning student."""

    id: int
    user_id: int
    first_seen_at: UTCDatetime
    last_login_at: UTCDatetime
    last_active_at: UTCDatetime


class DeviceListResponse(BaseModel):
    total: int
    devices: list[DeviceResponse]


class DeviceSettingsResponse(BaseModel):
    max_devices_per_student: int
    device_tracking_enabled: bool


class DeviceLimitUpdate(BaseModel):
    """Body of PUT /devices/settings. Range is checked by the service (1 or 2)."""

    max_devices_per_student: int


class EnforcementUpdate(BaseModel):
    enabled: bool = Field(..., strict=True)


class DeviceLimitResponse(BaseModel):
    message: str
    max_devices_per_student: int


class EnforcementResponse(BaseModel):
    message: str
    enabled: bool


class ResetAllResponse(BaseModel):
    message: str
    count: int


class ForceLogoutResponse(BaseModel):
    message: str
    revoked: int


class ActivityAccount(BaseModel):
    id: int
    name: str
    email: str
    role: str
    status: str


class AccountActivityResponse(BaseModel):
    account: ActivityAccount
    devices: list[DeviceResponse]
    total_devices: int
    login_count: int
    last_login_at: UTCDatetimeOptional = None
    suspicious: bool


class DeviceActivityResponse(BaseModel):
    accounts: list[AccountActivityResponse]
    max_devices_per_student: int
