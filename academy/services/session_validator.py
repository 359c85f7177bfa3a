"""
Per-request session and device validation.

Runs on every authenticated request after the access token's signature and
expiry have been verified:

1. Students must still hold a live refresh token; otherwise the session was
   killed by a later login or an admin action (SessionExpiredElsewhere).
2. With enforcement disabled, fingerprint checks are skipped.
3. A token bound to a fingerprint must be presented with the same fingerprint
   in the X-Device-Id header. A missing header fails the request; a different
   fingerprint fails it and revokes every session of the account.
4. Teachers and admins skip all of the above.

Policy failures always fail closed. Database errors while checking fail open:
they are logged and the request proceeds.
"""

import hmac

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import AuditAction
from academy.core.errors import DeviceSessionInvalid, SessionExpiredElsewhere
from academy.core.logging import get_logger, short_device_id
from academy.core.security import TokenClaims
from academy.models.account import Accounts
from academy.services import audit
from academy.services.device_registry import DeviceRegistry
from academy.services.settings_store import SettingsStore

logger = get_logger(__name__)


class SessionValidator:
    """Re-checks session liveness and device binding for one request."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.registry = DeviceRegistry(db)
        self.settings = SettingsStore(db)

    async def validate(
        self,
        account: Accounts,
        claims: TokenClaims,
        request_device_id: str | None,
    ) -> None:
        """
        Validate the session behind an already-verified access token.

        Raises:
            SessionExpiredElsewhere: no live refresh token remains
            DeviceSessionInvalid: bound fingerprint missing or mismatched
        """
        if not account.user_role.is_device_bound:
            return

        account_id = claims.account_id

        await self.ensure_live_session(account_id)

        try:
            enforcement_enabled = await self.settings.is_enforcement_enabled()
        except SQLAlchemyError:
            await self._fail_open("enforcement_lookup", account_id)
            return

        if not enforcement_enabled:
            return

        bound_device_id = claims.device_id
        if bound_device_id is None:
            logger.info("legacy_token_without_device", account_id=account_id)
            return

        if not request_device_id:
            logger.warning("device_header_missing", account_id=account_id)
            raise DeviceSessionInvalid()

        if not hmac.compare_digest(bound_device_id.encode(), request_device_id.encode()):
            await self._revoke_on_mismatch(account_id, bound_device_id, request_device_id)
            raise DeviceSessionInvalid()

        await self._touch_activity(account_id, bound_device_id)

    async def ensure_live_session(self, account_id: int) -> None:
        """Fail with SessionExpiredElsewhere when the account has no live refresh token."""
        try:
            has_live_session = await self.registry.has_live_session(account_id)
        except SQLAlchemyError:
            await self._fail_open("live_session_lookup", account_id)
            return

        if not has_live_session:
            logger.info("session_expired_elsewhere", account_id=account_id)
            raise SessionExpiredElsewhere()

    async def _revoke_on_mismatch(
        self, account_id: int, bound_device_id: str, request_device_id: str
    ) -> None:
        logger.warning(
            "device_mismatch",
            account_id=account_id,
            token_device_id=short_device_id(bound_device_id),
            request_device_id=short_device_id(request_device_id),
        )
        try:
            revoked = await self.registry.revoke_all([account_id])
            await self.db.commit()
        except SQLAlchemyError:
            await self._fail_open("mismatch_revocation", account_id)
            return

        logger.warning(
            "session_revoked_on_device_mismatch", account_id=account_id, revoked=revoked
        )
        await audit.record_event(
            account_id,
            AuditAction.DEVICE_SESSION_INVALIDATED,
            f"Sessions revoked after device mismatch for account ID: {account_id}",
            {"revoked": revoked},
        )

    async def _touch_activity(self, account_id: int, device_id: str) -> None:
        try:
            await self.registry.touch_activity(account_id, device_id)
            await self.db.commit()
        except SQLAlchemyError:
            await self._fail_open("activity_touch", account_id)

    async def _fail_open(self, stage: str, account_id: int) -> None:
        logger.error("session_validation_error", stage=stage, account_id=account_id, exc_info=True)
        try:
            await self.db.rollback()
        except SQLAlchemyError:
            logger.error("session_validation_rollback_failed", stage=stage, exc_info=True)
