"""
Administrator overrides for the device policy.

All account-targeted operations apply to student accounts only. Each operation
commits its primary effect, then dispatches an audit event. Reset operations
treat device-record deletion as the guaranteed effect; session and status
cleanups after it are best-effort: a failure is logged and the call still
succeeds.
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import (
    ALLOWED_DEVICE_LIMITS,
    AccountStatus,
    AuditAction,
    SettingKey,
    UserRole,
    settings,
)
from academy.core.errors import (
    AccountNotFound,
    DeviceNotFound,
    InvalidPolicyValue,
    NotAStudentAccount,
)
from academy.core.logging import get_logger
from academy.models.account import Accounts
from academy.models.device import UserDevices
from academy.services import audit
from academy.services.device_registry import DeviceRegistry
from academy.services.settings_store import DevicePolicy, SettingsStore

logger = get_logger(__name__)


@dataclass
class AccountDeviceActivity:
    """Device activity of one account for the admin report."""

    account: Accounts
    devices: list[UserDevices] = field(default_factory=list)
    login_count: int = 0
    last_login_at: datetime | None = None
    suspicious: bool = False

    @property
    def total_devices(self) -> int:
        return len(self.devices)


@dataclass
class DeviceActivityReport:
    accounts: list[AccountDeviceActivity]
    max_devices_per_student: int


class DeviceAdminService:
    """Admin operations on device policy, device records and student sessions."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.registry = DeviceRegistry(db)
        self.settings = SettingsStore(db)

    # ===== Global policy =====

    async def get_device_settings(self) -> DevicePolicy:
        return await self.settings.get_policy()

    async def set_global_device_limit(self, limit: int, admin_id: int) -> int:
        """
        Set the per-student device cap.

        Raises:
            InvalidPolicyValue: limit is not 1 or 2
        """
        if limit not in ALLOWED_DEVICE_LIMITS:
            raise InvalidPolicyValue()

        await self.settings.set(SettingKey.MAX_DEVICES_PER_STUDENT, str(limit), updated_by=admin_id)
        logger.info("device_limit_changed", limit=limit, admin_id=admin_id)

        await audit.record_event(
            admin_id,
            AuditAction.DEVICE_LIMIT_CHANGED,
            f"Changed global device limit to {limit}",
            {"limit": limit},
        )
        return limit

    async def toggle_enforcement(self, enabled: bool, admin_id: int) -> bool:
        """Turn device enforcement on or off (the setting row is created if missing)."""
        await self.settings.set(
            SettingKey.DEVICE_TRACKING_ENABLED, "true" if enabled else "false", updated_by=admin_id
        )
        logger.info("device_enforcement_toggled", enabled=enabled, admin_id=admin_id)

        await audit.record_event(
            admin_id,
            AuditAction.DEVICE_ENFORCEMENT_TOGGLED,
            f"Device enforcement {'enabled' if enabled else 'disabled'}",
            {"enabled": enabled},
        )
        return enabled

    # ===== Per-student overrides =====

    async def _get_student(self, account_id: int) -> Accounts:
        account = await self.db.get(Accounts, account_id)
        if account is None:
            raise AccountNotFound()
        if not account.user_role.is_device_bound:
            raise NotAStudentAccount()
        return account

    async def list_student_devices(self, account_id: int) -> list[UserDevices]:
        await self._get_student(account_id)
        return list(await self.registry.list_devices(account_id))

    async def force_logout(self, account_id: int, admin_id: int) -> int:
        """Revoke (not delete) every refresh token of a student. Devices are untouched."""
        await self._get_student(account_id)

        revoked = await self.registry.revoke_all([account_id])
        await self.db.commit()
        logger.info(
            "student_force_logout", account_id=account_id, revoked=revoked, admin_id=admin_id
        )

        await audit.record_event(
            admin_id,
            AuditAction.FORCE_LOGOUT,
            f"Forced logout for student ID: {account_id}",
            {"student_id": account_id, "revoked": revoked},
        )
        return revoked

    async def reset_devices(self, account_id: int, admin_id: int) -> None:
        """
        Reset a student's devices so they can log in from a new device.

        1. Delete all device records (failure propagates)
        2. Delete all refresh tokens (best-effort)
        3. Set the account status back to active (best-effort)

        Course data is not touched. Calling this twice is harmless.
        """
        await self._get_student(account_id)

        deleted_devices = await self.registry.delete_devices([account_id])
        await self.db.commit()
        logger.info("student_devices_deleted", account_id=account_id, deleted=deleted_devices)

        deleted_tokens: int | None = None
        try:
            deleted_tokens = await self.registry.delete_refresh_tokens([account_id])
            await self.db.commit()
        except SQLAlchemyError:
            await self._rollback_secondary("refresh_token_delete", account_id)

        status_reset = False
        try:
            await self.db.execute(
                update(Accounts)
                .where(Accounts.id == account_id)  # type: ignore[arg-type]
                .values(status=AccountStatus.ACTIVE)
            )
            await self.db.commit()
            status_reset = True
        except SQLAlchemyError:
            await self._rollback_secondary("status_reset", account_id)

        logger.info(
            "student_devices_reset",
            account_id=account_id,
            deleted_devices=deleted_devices,
            deleted_tokens=deleted_tokens,
            status_reset=status_reset,
            admin_id=admin_id,
        )

        await audit.record_event(
            admin_id,
            AuditAction.DEVICE_RESET,
            f"Reset devices for student ID: {account_id} - devices deleted, tokens deleted, "
            "account reactivated. Course data preserved.",
            {
                "student_id": account_id,
                "deleted_devices": deleted_devices,
                "deleted_tokens": deleted_tokens,
                "status_reset": status_reset,
            },
        )

    async def reset_all_devices(self, admin_id: int) -> int:
        """
        Delete the device records of every student and revoke their sessions.

        Returns:
            Number of student accounts affected
        """
        result = await self.db.execute(
            select(Accounts.id).where(Accounts.role == UserRole.STUDENT.value)  # type: ignore[arg-type]
        )
        student_ids = list(result.scalars().all())

        deleted_devices = await self.registry.delete_devices(student_ids)
        await self.db.commit()

        revoked: int | None = None
        try:
            revoked = await self.registry.revoke_all(student_ids)
            await self.db.commit()
        except SQLAlchemyError:
            await self._rollback_secondary("bulk_revoke", None)

        count = len(student_ids)
        logger.warning(
            "all_student_devices_reset",
            count=count,
            deleted_devices=deleted_devices,
            revoked=revoked,
            admin_id=admin_id,
        )

        await audit.record_event(
            admin_id,
            AuditAction.RESET_ALL_DEVICES,
            f"Reset devices for all {count} students",
            {"count": count, "deleted_devices": deleted_devices, "revoked": revoked},
        )
        return count

    async def block_device(self, device_record_id: int, admin_id: int) -> UserDevices:
        """
        Block one device record.

        Only future logins from the device are refused; a session already
        issued to it stays alive until it is revoked or reset.
        """
        device = await self.registry.get_device(device_record_id)
        if device is None:
            raise DeviceNotFound()
        await self._get_student(device.user_id)

        device.is_blocked = True
        await self.db.commit()
        logger.info(
            "device_blocked",
            device_record_id=device_record_id,
            account_id=device.user_id,
            admin_id=admin_id,
        )

        await audit.record_event(
            admin_id,
            AuditAction.DEVICE_BLOCKED,
            f"Blocked device ID: {device_record_id} for student ID: {device.user_id}",
            {"device_record_id": device_record_id, "student_id": device.user_id},
        )
        return device

    # ===== Reporting =====

    async def get_device_activity(self, students_only: bool = True) -> DeviceActivityReport:
        """
        Device records grouped by account with a simple abuse flag.

        An account is suspicious when it has more devices than the current cap
        or any of its records shows more than SUSPICIOUS_DEVICE_CHANGES changes.
        """
        policy = await self.settings.get_policy()

        query = select(UserDevices, Accounts).join(
            Accounts, Accounts.id == UserDevices.user_id  # type: ignore[arg-type]
        )
        if students_only:
            query = query.where(Accounts.role == UserRole.STUDENT.value)  # type: ignore[arg-type]
        query = query.order_by(UserDevices.last_login_at.desc())  # type: ignore[attr-defined]

        result = await self.db.execute(query)

        grouped: dict[int, AccountDeviceActivity] = {}
        for device, account in result.all():
            entry = grouped.get(account.id)
            if entry is None:
                entry = grouped[account.id] = AccountDeviceActivity(account=account)
            entry.devices.append(device)
            entry.login_count += device.login_count or 0
            if entry.last_login_at is None or device.last_login_at > entry.last_login_at:
                entry.last_login_at = device.last_login_at
            if (
                entry.total_devices > policy.max_devices_per_student
                or (device.device_changes_count or 0) > settings.SUSPICIOUS_DEVICE_CHANGES
            ):
                entry.suspicious = True

        return DeviceActivityReport(
            accounts=list(grouped.values()),
            max_devices_per_student=policy.max_devices_per_student,
        )

    async def _rollback_secondary(self, stage: str, account_id: int | None) -> None:
        logger.error(
            "device_reset_secondary_failed", stage=stage, account_id=account_id, exc_info=True
        )
        await self.db.rollback()
