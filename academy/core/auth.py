"""
Authentication dependencies for FastAPI route protection.

This module provides dependency functions for:
- Extracting and verifying bearer access tokens
- Loading the current account and refusing blocked accounts
- Running the session validator (live session + device binding)
- Protecting admin routes
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import UserRole
from academy.core.database import get_db
from academy.core.errors import AccountBlocked, AdminRequired, InvalidToken, NotAuthenticated
from academy.core.fingerprint import get_request_device_id
from academy.core.logging import bind_context
from academy.core.security import TokenClaims, verify_access_token
from academy.models.account import Accounts
from academy.services.session_validator import SessionValidator

# Define the security scheme for OpenAPI documentation
security = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedAccount:
    """Account loaded for a request together with its verified token claims."""

    account: Accounts
    claims: TokenClaims

    @property
    def id(self) -> int:
        return self.claims.account_id

    @property
    def role(self) -> UserRole:
        return self.account.user_role


async def get_token_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> TokenClaims:
    """
    Extract and verify the bearer access token.

    Raises:
        NotAuthenticated: no bearer token supplied
        InvalidToken: token is malformed, expired or not an access token
    """
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated("No token provided. Please login.")

    claims = verify_access_token(credentials.credentials)
    if claims is None:
        raise InvalidToken()

    return claims


async def _load_account(claims: TokenClaims, db: AsyncSession) -> Accounts:
    account = await db.get(Accounts, claims.account_id)
    if account is None:
        raise InvalidToken("User not found or token invalid")
    if account.is_blocked:
        raise AccountBlocked()
    bind_context(account_id=claims.account_id)
    return account


async def _reload_if_expired(account: Accounts, db: AsyncSession) -> None:
    # A fail-open validator rolls the session back, expiring loaded objects
    if inspect(account).expired_attributes:
        await db.refresh(account)


async def get_session_account(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthenticatedAccount:
    """
    Load the account and require a live session, without the device check.

    Used by logout so a client whose fingerprint changed can still end its
    session cleanly.
    """
    account = await _load_account(claims, db)
    if account.user_role.is_device_bound:
        await SessionValidator(db).ensure_live_session(claims.account_id)
        await _reload_if_expired(account, db)
    return AuthenticatedAccount(account=account, claims=claims)


async def get_current_account(
    request: Request,
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthenticatedAccount:
    """
    Load the current account and run full session validation.

    Students must hold a live session and, under enforcement, present the
    fingerprint their token is bound to in the X-Device-Id header.
    """
    account = await _load_account(claims, db)
    await SessionValidator(db).validate(account, claims, get_request_device_id(request))
    await _reload_if_expired(account, db)
    return AuthenticatedAccount(account=account, claims=claims)


async def require_admin(
    current: Annotated[AuthenticatedAccount, Depends(get_current_account)],
) -> AuthenticatedAccount:
    """
    Require current account to be an admin.

    Raises:
        AdminRequired: 403 if the account is not an admin
    """
    if current.role is not UserRole.ADMIN:
        raise AdminRequired()
    return current


# Type aliases for dependency injection
CurrentAccount = Annotated[AuthenticatedAccount, Depends(get_current_account)]
SessionAccount = Annotated[AuthenticatedAccount, Depends(get_session_account)]
AdminAccount = Annotated[AuthenticatedAccount, Depends(require_admin)]
