"""
Authentication service: registration, login, refresh, logout and password change.

Login order for every account:
1. Email/password check (same error for unknown email and wrong password)
2. Blocked accounts are refused before any device logic
3. Device admission and single-session revocation (students only)
4. Credential issuance, bound to the request fingerprint for students
"""

from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import AccountStatus, AuditAction, UserRole
from academy.core.errors import (
    AccountBlocked,
    EmailAlreadyRegistered,
    IncorrectPassword,
    InvalidCredentials,
)
from academy.core.logging import get_logger
from academy.core.security import get_password_hash, verify_password
from academy.models.account import Accounts
from academy.services import audit
from academy.services.credentials import CredentialIssuer, IssuedCredentials, RenewedAccess
from academy.services.device_policy import DevicePolicyEngine
from academy.services.device_registry import DeviceRegistry
from academy.utils.timezone import utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClientContext:
    """Request-derived device information."""

    device_id: str
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class LoginResult:
    account: Accounts
    credentials: IssuedCredentials


class AuthService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.policy = DevicePolicyEngine(db)
        self.issuer = CredentialIssuer(db)

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        client: ClientContext,
        phone: str | None = None,
    ) -> LoginResult:
        """Create a student account and log it in from the registering device."""
        email = email.lower()
        existing = await self.db.execute(select(Accounts.id).where(Accounts.email == email))  # type: ignore[arg-type]
        if existing.first() is not None:
            raise EmailAlreadyRegistered()

        account = Accounts(
            name=name,
            email=email,
            phone=phone,
            password_hash=get_password_hash(password),
            role=UserRole.STUDENT.value,
            status=AccountStatus.ACTIVE,
        )
        self.db.add(account)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise EmailAlreadyRegistered() from e
        await self.db.refresh(account)

        logger.info("account_registered", account_id=account.id, role=account.role)

        return await self._start_session(account, client)

    async def login(self, email: str, password: str, client: ClientContext) -> LoginResult:
        """
        Authenticate and start a session.

        Raises:
            InvalidCredentials: unknown email or wrong password
            AccountBlocked: account status is blocked
            DeviceBlocked / DeviceLimitExceeded: student device policy refused the device
        """
        result = await self.db.execute(
            select(Accounts).where(Accounts.email == email.lower())  # type: ignore[arg-type]
        )
        account = result.scalar_one_or_none()

        if account is None or not verify_password(password, account.password_hash):
            logger.info("login_failed", reason="invalid_credentials")
            raise InvalidCredentials()

        if account.is_blocked:
            logger.info("login_failed", reason="account_blocked", account_id=account.id)
            raise AccountBlocked()

        return await self._start_session(account, client)

    async def _start_session(self, account: Accounts, client: ClientContext) -> LoginResult:
        if account.id is None:
            raise ValueError("Account ID cannot be None")
        account_id = account.id
        role = account.user_role

        await self.policy.admit_login(
            account_id,
            role,
            client.device_id,
            user_agent=client.user_agent,
            ip_address=client.ip_address,
        )

        credentials = await self.issuer.issue(
            account_id,
            role,
            device_id=client.device_id,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
        )

        await self.db.execute(
            update(Accounts).where(Accounts.id == account_id).values(last_login_at=utc_now())  # type: ignore[arg-type]
        )
        await self.db.commit()
        await self.db.refresh(account)

        return LoginResult(account=account, credentials=credentials)

    async def refresh(self, refresh_token: str) -> RenewedAccess:
        return await self.issuer.renew(refresh_token)

    async def logout(self, account_id: int, refresh_token: str | None) -> None:
        """Revoke one of the caller's refresh tokens. The access token expires on its own."""
        if not refresh_token:
            return
        await self.issuer.revoke(account_id, refresh_token)

    async def change_password(
        self, account: Accounts, current_password: str, new_password: str
    ) -> None:
        """Change the password and revoke every session (forces a new login)."""
        if not verify_password(current_password, account.password_hash):
            raise IncorrectPassword()

        account.password_hash = get_password_hash(new_password)
        account_id = account.id
        if account_id is None:
            raise ValueError("Account ID cannot be None")

        revoked = await DeviceRegistry(self.db).revoke_all([account_id])
        await self.db.commit()

        logger.info("password_changed", account_id=account_id, revoked=revoked)
        await audit.record_event(
            account_id,
            AuditAction.PASSWORD_CHANGED,
            "Password changed; all sessions revoked",
            {"revoked": revoked},
        )
