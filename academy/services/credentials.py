"""
Credential issuer.

Mints access/refresh token pairs and exchanges refresh tokens for new access
tokens. Issuing never revokes earlier sessions: for students the device policy
engine does that before issue() is called.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import UserRole, settings
from academy.core.errors import AccountBlocked, SessionExpired
from academy.core.logging import get_logger, short_device_id
from academy.core.security import (
    create_access_token,
    create_refresh_token,
    hash_refresh_token,
    verify_refresh_token,
)
from academy.models.account import Accounts
from academy.services.device_registry import DeviceRegistry

logger = get_logger(__name__)


@dataclass(frozen=True)
class IssuedCredentials:
    access_token: str
    refresh_token: str
    expires_in: int
    device_id: str | None


@dataclass(frozen=True)
class RenewedAccess:
    access_token: str
    expires_in: int


def access_token_lifetime() -> int:
    """Access token lifetime in seconds."""
    return settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


class CredentialIssuer:
    """Issues and renews JWT credentials backed by refresh-token rows."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.registry = DeviceRegistry(db)

    async def issue(
        self,
        account_id: int,
        role: UserRole,
        device_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> IssuedCredentials:
        """
        Create an access/refresh pair and persist the refresh row.

        The fingerprint is bound only for device-bound roles; teacher and admin
        credentials never carry one.
        """
        bound_device = device_id if role.is_device_bound else None

        access_token = create_access_token(account_id, role, bound_device)
        refresh_token, expires_at = create_refresh_token(account_id, role, bound_device)

        self.registry.add_refresh_token(
            account_id,
            token_hash=hash_refresh_token(refresh_token),
            expires_at=expires_at,
            device_id=bound_device,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        await self.db.commit()

        logger.info(
            "credentials_issued",
            account_id=account_id,
            role=role.value,
            device_id=short_device_id(bound_device),
        )

        return IssuedCredentials(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=access_token_lifetime(),
            device_id=bound_device,
        )

    async def renew(self, refresh_token: str) -> RenewedAccess:
        """
        Exchange a refresh token for a new access token.

        A token that still verifies cryptographically is rejected when its row
        is missing, revoked or past its stored expiry.

        Raises:
            SessionExpired: token invalid, expired, revoked or unknown
            AccountBlocked: the account has been blocked since login
        """
        claims = verify_refresh_token(refresh_token)
        if claims is None:
            raise SessionExpired("Invalid or expired refresh token. Please login again.")

        row = await self.registry.find_live_refresh_token(hash_refresh_token(refresh_token))
        if row is None or row.user_id != claims.account_id:
            logger.info("refresh_rejected_no_live_session", account_id=claims.account_id)
            raise SessionExpired()

        account = await self.db.get(Accounts, claims.account_id)
        if account is None:
            raise SessionExpired()
        if account.is_blocked:
            raise AccountBlocked()

        access_token = create_access_token(claims.account_id, claims.role, claims.device_id)

        logger.debug("access_token_renewed", account_id=claims.account_id)

        return RenewedAccess(access_token=access_token, expires_in=access_token_lifetime())

    async def revoke(self, account_id: int, refresh_token: str) -> bool:
        """
        Revoke one of the account's refresh tokens (logout).

        Unknown tokens and tokens belonging to another account are ignored.
        """
        revoked = await self.registry.revoke_token(account_id, hash_refresh_token(refresh_token))
        await self.db.commit()
        return revoked
