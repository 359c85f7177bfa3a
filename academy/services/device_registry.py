"""
Device registry: persistence for device records and refresh-token sessions.

Thin data-access layer over the ``user_devices`` and ``refresh_tokens`` tables.
Methods never commit; the policy engine, credential issuer and admin service
own the transaction boundaries.
"""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models.device import UserDevices
from academy.models.refresh_token import RefreshTokens
from academy.utils.timezone import utc_now


class DeviceRegistry:
    """Registry of device records and refresh-token sessions per account."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ===== Device records =====

    async def list_devices(self, account_id: int) -> Sequence[UserDevices]:
        """All devices of an account, most recent login first."""
        result = await self.db.execute(
            select(UserDevices)
            .where(UserDevices.user_id == account_id)  # type: ignore[arg-type]
            .order_by(desc(UserDevices.last_login_at))  # type: ignore[arg-type]
        )
        return result.scalars().all()

    async def list_all_devices(self) -> Sequence[UserDevices]:
        result = await self.db.execute(
            select(UserDevices).order_by(desc(UserDevices.last_login_at))  # type: ignore[arg-type]
        )
        return result.scalars().all()

    async def get_device(self, device_record_id: int) -> UserDevices | None:
        return await self.db.get(UserDevices, device_record_id)

    async def find_device(self, account_id: int, device_id: str) -> UserDevices | None:
        result = await self.db.execute(
            select(UserDevices).where(
                UserDevices.user_id == account_id,  # type: ignore[arg-type]
                UserDevices.device_id == device_id,  # type: ignore[arg-type]
            )
        )
        return result.scalar_one_or_none()

    async def count_devices(self, account_id: int) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(UserDevices)
            .where(UserDevices.user_id == account_id)  # type: ignore[arg-type]
        )
        return result.scalar_one()

    async def register_device(
        self,
        account_id: int,
        device_id: str,
        device_name: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
        device_changes_count: int = 0,
    ) -> UserDevices:
        """
        Insert a device record and flush it.

        Raises IntegrityError if the (account, fingerprint) pair already exists.
        """
        now = utc_now()
        device = UserDevices(
            user_id=account_id,
            device_id=device_id,
            device_name=device_name,
            ip_address=ip_address,
            user_agent=user_agent,
            first_seen_at=now,
            last_login_at=now,
            last_active_at=now,
            login_count=1,
            device_changes_count=device_changes_count,
        )
        self.db.add(device)
        await self.db.flush()
        return device

    def record_login(
        self, device: UserDevices, ip_address: str | None = None, user_agent: str | None = None
    ) -> None:
        """Count another login from a known device."""
        now = utc_now()
        device.login_count = (device.login_count or 0) + 1
        device.last_login_at = now
        device.last_active_at = now
        if ip_address:
            device.ip_address = ip_address
        if user_agent:
            device.user_agent = user_agent

    async def set_device_changes(self, account_id: int, count: int) -> None:
        """Store the account-wide device change counter on every record of the account."""
        await self.db.execute(
            update(UserDevices)
            .where(UserDevices.user_id == account_id)  # type: ignore[arg-type]
            .values(device_changes_count=count)
        )

    async def touch_activity(self, account_id: int, device_id: str) -> int:
        """Refresh last_active_at of an existing record. Never creates one."""
        result = await self.db.execute(
            update(UserDevices)
            .where(
                UserDevices.user_id == account_id,  # type: ignore[arg-type]
                UserDevices.device_id == device_id,  # type: ignore[arg-type]
            )
            .values(last_active_at=utc_now())
        )
        return result.rowcount  # type: ignore[attr-defined]

    async def delete_devices(self, account_ids: Sequence[int]) -> int:
        if not account_ids:
            return 0
        result = await self.db.execute(
            delete(UserDevices).where(UserDevices.user_id.in_(account_ids))  # type: ignore[attr-defined]
        )
        return result.rowcount  # type: ignore[attr-defined]

    # ===== Refresh-token sessions =====

    def add_refresh_token(
        self,
        account_id: int,
        token_hash: str,
        expires_at: datetime,
        device_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> RefreshTokens:
        row = RefreshTokens(
            user_id=account_id,
            token_hash=token_hash,
            device_id=device_id,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent[:255] if user_agent else None,
        )
        self.db.add(row)
        return row

    async def find_live_refresh_token(self, token_hash: str) -> RefreshTokens | None:
        """Row for this token if it is neither revoked nor past its stored expiry."""
        result = await self.db.execute(
            select(RefreshTokens).where(
                RefreshTokens.token_hash == token_hash,  # type: ignore[arg-type]
                RefreshTokens.revoked == False,  # noqa: E712
                RefreshTokens.expires_at > utc_now(),  # type: ignore[arg-type]
            )
        )
        return result.scalar_one_or_none()

    async def has_live_session(self, account_id: int) -> bool:
        result = await self.db.execute(
            select(RefreshTokens.id)
            .where(
                RefreshTokens.user_id == account_id,  # type: ignore[arg-type]
                RefreshTokens.revoked == False,  # noqa: E712
                RefreshTokens.expires_at > utc_now(),  # type: ignore[arg-type]
            )
            .limit(1)
        )
        return result.first() is not None

    async def count_live_sessions(self, account_id: int) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(RefreshTokens)
            .where(
                RefreshTokens.user_id == account_id,  # type: ignore[arg-type]
                RefreshTokens.revoked == False,  # noqa: E712
                RefreshTokens.expires_at > utc_now(),  # type: ignore[arg-type]
            )
        )
        return result.scalar_one()

    async def revoke_all(self, account_ids: Sequence[int]) -> int:
        """
        Revoke every unrevoked refresh token of the given accounts.

        A single UPDATE: rows inserted after it runs are not affected.
        """
        if not account_ids:
            return 0
        result = await self.db.execute(
            update(RefreshTokens)
            .where(
                RefreshTokens.user_id.in_(account_ids),  # type: ignore[attr-defined]
                RefreshTokens.revoked == False,  # noqa: E712
            )
            .values(revoked=True, revoked_at=utc_now())
        )
        return result.rowcount  # type: ignore[attr-defined]

    async def revoke_token(self, account_id: int, token_hash: str) -> bool:
        result = await self.db.execute(
            update(RefreshTokens)
            .where(
                RefreshTokens.user_id == account_id,  # type: ignore[arg-type]
                RefreshTokens.token_hash == token_hash,  # type: ignore[arg-type]
                RefreshTokens.revoked == False,  # noqa: E712
            )
            .values(revoked=True, revoked_at=utc_now())
        )
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def delete_refresh_tokens(self, account_ids: Sequence[int]) -> int:
        if not account_ids:
            return 0
        result = await self.db.execute(
            delete(RefreshTokens).where(RefreshTokens.user_id.in_(account_ids))  # type: ignore[attr-defined]
        )
        return result.rowcount  # type: ignore[attr-defined]
