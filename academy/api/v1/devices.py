"""
Admin device management endpoints.

All endpoints require an admin. They let administrators:
- Read and change the global device limit (1 or 2 devices per student)
- Turn device enforcement on or off
- Inspect device activity, with accounts flagged as suspicious
- Force-logout a student, reset a student's devices, or reset every student
- Block a single device record

Account-targeted actions only apply to student accounts.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.auth import AdminAccount
from academy.core.database import get_db
from academy.schemas.auth import MessageResponse
from academy.schemas.device import (
    AccountActivityResponse,
    ActivityAccount,
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
from academy.services.device_admin import DeviceAdminService

router = APIRouter(prefix="/devices", tags=["devices"])


# ===== Global policy =====


@router.get("/settings", response_model=DeviceSettingsResponse)
async def get_device_settings(
    _admin: AdminAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeviceSettingsResponse:
    """Current device limit and enforcement flag."""
    policy = await DeviceAdminService(db).get_device_settings()
    return DeviceSettingsResponse(
        max_devices_per_student=policy.max_devices_per_student,
        device_tracking_enabled=policy.enforcement_enabled,
    )


@router.put("/settings", response_model=DeviceLimitResponse)
async def update_device_limit(
    data: DeviceLimitUpdate,
    admin: AdminAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeviceLimitResponse:
    """
    Set the global per-student device limit.

    Only 1 or 2 are accepted (INVALID_POLICY_VALUE otherwise). Takes effect
    for the next login on every server instance.
    """
    limit = await DeviceAdminService(db).set_global_device_limit(
        data.max_devices_per_student, admin.id
    )
    return DeviceLimitResponse(
        message=f"Device limit set to {limit}", max_devices_per_student=limit
    )


@router.put("/enforcement", response_model=EnforcementResponse)
async def toggle_enforcement(
    data: EnforcementUpdate,
    admin: AdminAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EnforcementResponse:
    """Turn device enforcement on or off."""
    enabled = await DeviceAdminService(db).toggle_enforcement(data.enabled, admin.id)
    return EnforcementResponse(
        message=f"Device enforcement {'enabled' if enabled else 'disabled'}",
        enabled=enabled,
    )


# ===== Reporting =====


@router.get("/activity", response_model=DeviceActivityResponse)
async def get_device_activity(
    _admin: AdminAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
    students_only: Annotated[bool, Query(description="Only include student accounts")] = True,
) -> DeviceActivityResponse:
    """Device activity grouped by account, with suspicious accounts flagged."""
    report = await DeviceAdminService(db).get_device_activity(students_only=students_only)
    return DeviceActivityResponse(
        accounts=[
            AccountActivityResponse(
                account=ActivityAccount.model_validate(entry.account, from_attributes=True),
                devices=[DeviceResponse.model_validate(d) for d in entry.devices],
                total_devices=entry.total_devices,
                login_count=entry.login_count,
                last_login_at=entry.last_login_at,
                suspicious=entry.suspicious,
            )
            for entry in report.accounts
        ],
        max_devices_per_student=report.max_devices_per_student,
    )


# ===== Bulk =====


@router.post("/reset-all", response_model=ResetAllResponse)
async def reset_all_devices(
    admin: AdminAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ResetAllResponse:
    """
    Reset devices for every student (destructive).

    Device records are deleted and sessions revoked; ``count`` is the number
    of student accounts affected.
    """
    count = await DeviceAdminService(db).reset_all_devices(admin.id)
    return ResetAllResponse(message=f"Reset devices for {count} students", count=count)


# ===== Per-student =====


@router.get("/students/{account_id}", response_model=DeviceListResponse)
async def list_student_devices(
    account_id: Annotated[int, Path(description="Student account ID")],
    _admin: AdminAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeviceListResponse:
    """Devices registered to one student, most recent login first."""
    devices = await DeviceAdminService(db).list_student_devices(account_id)
    return DeviceListResponse(
        total=len(devices),
        devices=[DeviceResponse.model_validate(d) for d in devices],
    )


@router.post("/students/{account_id}/force-logout", response_model=ForceLogoutResponse)
async def force_logout_student(
    account_id: Annotated[int, Path(description="Student account ID")],
    admin: AdminAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ForceLogoutResponse:
    """Revoke every session of a student. Registered devices are kept."""
    revoked = await DeviceAdminService(db).force_logout(account_id, admin.id)
    return ForceLogoutResponse(message="Student logged out successfully", revoked=revoked)


@router.post("/students/{account_id}/reset", response_model=MessageResponse)
async def reset_student_devices(
    account_id: Annotated[int, Path(description="Student account ID")],
    admin: AdminAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    """
    Reset a student's devices.

    Deletes all device records and sessions and reactivates the account.
    Session cleanup and reactivation are best-effort; the call succeeds once
    the device records are gone.
    """
    await DeviceAdminService(db).reset_devices(account_id, admin.id)
    return MessageResponse(
        message="Student devices reset successfully. Student can now login from a new device."
    )


@router.post("/{device_record_id}/block", response_model=DeviceResponse)
async def block_device(
    device_record_id: Annotated[int, Path(description="Device record ID")],
    admin: AdminAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DeviceResponse:
    """
    Block one device record.

    Future logins from the device fail with DEVICE_BLOCKED. A session already
    running on it is not revoked; use force-logout or reset for that.
    """
    device = await DeviceAdminService(db).block_device(device_record_id, admin.id)
    return DeviceResponse.model_validate(device)
