"""
Device policy engine.

Decides at login time whether a student may use the presenting device:

1. Enforcement disabled: admit without touching the registry.
2. Fingerprint registered and blocked by an admin: DeviceBlocked.
3. Fingerprint registered: count the login, admit.
4. New fingerprint: DeviceLimitExceeded if the account is at its cap,
   otherwise register the device (bumping the account's device change
   counter when it already had devices) and admit.
5. On every admission, revoke all existing refresh tokens of the account so
   the credential issued next is its only live session.

Steps 2-4 run under a row lock on the account, so concurrent logins for the
same student are serialised instead of both passing the count check. A
concurrent insert of the same fingerprint is resolved by the unique index.
Teachers and admins bypass the whole policy.
"""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import UserRole
from academy.core.errors import DeviceBlocked, DeviceLimitExceeded
from academy.core.fingerprint import guess_device_name
from academy.core.logging import get_logger, short_device_id
from academy.models.account import Accounts
from academy.models.device import UserDevices
from academy.services.device_registry import DeviceRegistry
from academy.services.settings_store import DevicePolicy, SettingsStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class Admission:
    """Outcome of a successful admission check."""

    admitted: bool = True
    # True when device policy was evaluated (student with enforcement on)
    enforced: bool = False
    known_device: bool = False
    device_record_id: int | None = None
    revoked_sessions: int = 0


class DevicePolicyEngine:
    """Login-time device admission and single-session enforcement."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.registry = DeviceRegistry(db)
        self.settings = SettingsStore(db)

    async def admit_login(
        self,
        account_id: int,
        role: UserRole,
        device_id: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> Admission:
        """
        Admit a login from ``device_id`` or raise.

        Raises:
            DeviceBlocked: the fingerprint was blocked by an admin
            DeviceLimitExceeded: a new fingerprint would exceed the device cap
        """
        if not role.is_device_bound:
            return Admission()

        policy = await self.settings.get_policy()

        device: UserDevices | None = None
        known_device = False
        if policy.enforcement_enabled:
            await self._lock_account(account_id)
            device, known_device = await self._admit_device(
                account_id, device_id, policy, user_agent, ip_address
            )
        else:
            logger.info(
                "device_enforcement_disabled_skip",
                account_id=account_id,
                device_id=short_device_id(device_id),
            )

        # Single active session: kill every existing session before a new one is issued
        revoked = await self.registry.revoke_all([account_id])
        await self.db.commit()

        logger.info(
            "student_login_admitted",
            account_id=account_id,
            device_id=short_device_id(device_id),
            known_device=known_device,
            enforced=policy.enforcement_enabled,
            revoked_sessions=revoked,
        )

        return Admission(
            enforced=policy.enforcement_enabled,
            known_device=known_device,
            device_record_id=device.id if device is not None else None,
            revoked_sessions=revoked,
        )

    async def _lock_account(self, account_id: int) -> None:
        # Row lock held until the admission commits (no-op on SQLite)
        await self.db.execute(
            select(Accounts.id).where(Accounts.id == account_id).with_for_update()  # type: ignore[arg-type]
        )

    async def _admit_device(
        self,
        account_id: int,
        device_id: str,
        policy: DevicePolicy,
        user_agent: str | None,
        ip_address: str | None,
    ) -> tuple[UserDevices, bool]:
        devices = await self.registry.list_devices(account_id)
        current = next((d for d in devices if d.device_id == device_id), None)

        if current is not None:
            if current.is_blocked:
                logger.warning(
                    "blocked_device_login_rejected",
                    account_id=account_id,
                    device_id=short_device_id(device_id),
                )
                raise DeviceBlocked()
            self.registry.record_login(current, ip_address, user_agent)
            return current, True

        if len(devices) >= policy.max_devices_per_student:
            logger.warning(
                "device_limit_exceeded",
                account_id=account_id,
                device_id=short_device_id(device_id),
                registered=len(devices),
                limit=policy.max_devices_per_student,
            )
            raise DeviceLimitExceeded(policy.max_devices_per_student)

        changes = 0
        if devices:
            changes = max(d.device_changes_count or 0 for d in devices) + 1

        try:
            device = await self.registry.register_device(
                account_id,
                device_id,
                device_name=guess_device_name(user_agent),
                ip_address=ip_address,
                user_agent=user_agent,
                device_changes_count=changes,
            )
        except IntegrityError:
            # A concurrent login registered this fingerprint first
            await self.db.rollback()
            return await self._admit_concurrent_duplicate(
                account_id, device_id, user_agent, ip_address
            )

        if devices:
            await self.registry.set_device_changes(account_id, changes)
            logger.info(
                "device_change_recorded",
                account_id=account_id,
                device_changes_count=changes,
            )

        logger.info(
            "device_registered",
            account_id=account_id,
            device_id=short_device_id(device_id),
            device_name=device.device_name,
        )
        return device, False

    async def _admit_concurrent_duplicate(
        self,
        account_id: int,
        device_id: str,
        user_agent: str | None,
        ip_address: str | None,
    ) -> tuple[UserDevices, bool]:
        # The rollback released the row lock; revocation must run under it again
        await self._lock_account(account_id)
        existing = await self.registry.find_device(account_id, device_id)
        if existing is None:
            raise RuntimeError("device insert conflicted but no record exists")
        if existing.is_blocked:
            raise DeviceBlocked()
        self.registry.record_login(existing, ip_address, user_agent)
        return existing, True
