"""
Authentication API endpoints.

This module provides endpoints for:
- Student registration (logged in from the registering device)
- Login (JWT access token + refresh token, device-bound for students)
- Token refresh
- Logout (revoke refresh token)
- Password change (revokes every session)
- Current account info
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.auth import CurrentAccount, SessionAccount
from academy.core.database import get_db
from academy.core.fingerprint import device_id_from_request, get_client_ip, get_user_agent
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
from academy.services.auth import AuthService, ClientContext, LoginResult

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_context(request: Request) -> ClientContext:
    return ClientContext(
        device_id=device_id_from_request(request),
        ip_address=get_client_ip(request) or None,
        user_agent=get_user_agent(request) or None,
    )


def _token_response(result: LoginResult) -> TokenResponse:
    credentials = result.credentials
    return TokenResponse(
        access_token=credentials.access_token,
        refresh_token=credentials.refresh_token,
        token_type="bearer",
        expires_in=credentials.expires_in,
        device_id=credentials.device_id,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """
    Register a student account.

    The new account is logged in straight away through the same device
    admission path as /login, so the registering device becomes its first
    registered device.
    """
    result = await AuthService(db).register(
        name=data.name,
        email=data.email,
        password=data.password,
        phone=data.phone,
        client=_client_context(request),
    )
    return _token_response(result)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """
    Authenticate and return an access token and a refresh token.

    Flow:
    1. Verify email/password
    2. Refuse blocked accounts
    3. Students: derive the device fingerprint from User-Agent + IP, apply the
       device policy, revoke every earlier session
    4. Issue tokens (bound to the fingerprint for students)

    Students must send the returned ``device_id`` as the X-Device-Id header
    on every protected request.
    """
    result = await AuthService(db).login(
        credentials.email, credentials.password, _client_context(request)
    )
    return _token_response(result)


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh_token(
    data: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccessTokenResponse:
    """
    Exchange a refresh token for a new access token.

    Fails with SESSION_EXPIRED when the refresh token was revoked server-side
    (a later login, an admin action or a device mismatch), even if the token
    itself is still validly signed.
    """
    renewed = await AuthService(db).refresh(data.refresh_token)
    return AccessTokenResponse(
        access_token=renewed.access_token,
        token_type="bearer",
        expires_in=renewed.expires_in,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    data: LogoutRequest,
    current: SessionAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    """
    Logout by revoking the given refresh token.

    The access token is not revocable and expires naturally.
    """
    await AuthService(db).logout(current.id, data.refresh_token)
    return MessageResponse(message="Logout successful")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: PasswordChangeRequest,
    current: CurrentAccount,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    """Change password and revoke all sessions (forces a new login)."""
    await AuthService(db).change_password(
        current.account, data.current_password, data.new_password
    )
    return MessageResponse(
        message="Password changed successfully. Please login again with your new password."
    )


@router.get("/me", response_model=AccountResponse)
async def get_current_account_info(current: CurrentAccount) -> AccountResponse:
    """Get current authenticated account information."""
    return AccountResponse.model_validate(current.account)
