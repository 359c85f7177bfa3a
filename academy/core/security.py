"""
Security utilities for authentication.

This module provides:
- Password hashing and verification using bcrypt
- JWT access token generation and verification
- JWT refresh token generation and verification
- Refresh token hashing for database storage

Both token types carry the subject's role and, for device-bound roles, the
device fingerprint the session was issued to (``device_id`` claim).
"""

import base64
import hashlib
import re
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt

from academy.config import UserRole, settings

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of an access or refresh token."""

    account_id: int
    role: UserRole
    device_id: str | None
    expires_at: datetime
    token_id: str | None = None


def validate_password_strength(password: str) -> tuple[bool, str | None]:
    """
    Validate password meets security requirements.

    Requirements:
    - At least 8 characters
    - Contains at least one uppercase letter
    - Contains at least one lowercase letter
    - Contains at least one digit

    Args:
        password: The password to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"

    if not re.search(r"[A-Z]", password):
        return False, "Password must contain at least one uppercase letter"

    if not re.search(r"[a-z]", password):
        return False, "Password must contain at least one lowercase letter"

    if not re.search(r"\d", password):
        return False, "Password must contain at least one digit"

    return True, None


def _prepare_password_for_bcrypt(password: str) -> str:
    """
    Prepare password for bcrypt by handling long passwords.

    Bcrypt has a 72 byte limit. For passwords longer than 72 bytes,
    we SHA256 hash them first and encode as base64.
    """
    password_bytes = password.encode("utf-8")

    if len(password_bytes) <= 72:
        return password

    # SHA256 produces 32 bytes, base64 encoding produces 44 chars (well under 72)
    hashed = hashlib.sha256(password_bytes).digest()
    return base64.b64encode(hashed).decode("ascii")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The bcrypt hashed password

    Returns:
        True if password matches, False otherwise
    """
    prepared_password = _prepare_password_for_bcrypt(plain_password)
    try:
        return bcrypt.checkpw(prepared_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash in the database
        return False


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: The plain text password to hash

    Returns:
        The bcrypt hashed password
    """
    prepared_password = _prepare_password_for_bcrypt(password)
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(prepared_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def _base_payload(account_id: int, role: UserRole, device_id: str | None) -> dict[str, object]:
    payload: dict[str, object] = {
        "sub": str(account_id),  # "sub" (subject) is standard JWT claim
        "role": role.value,
    }
    # Only device-bound roles ever carry a fingerprint claim
    if role.is_device_bound and device_id:
        payload["device_id"] = device_id
    return payload


def create_access_token(
    account_id: int,
    role: UserRole,
    device_id: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        account_id: The account ID to encode in the token
        role: Role of the account
        device_id: Device fingerprint to bind (ignored for non device-bound roles)
        expires_delta: Optional custom expiration time
            (defaults to settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    now = datetime.now(UTC)
    payload = _base_payload(account_id, role, device_id)
    payload.update({"type": ACCESS_TOKEN_TYPE, "iat": now, "exp": now + expires_delta})

    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_refresh_token(
    account_id: int,
    role: UserRole,
    device_id: str | None = None,
    expires_delta: timedelta | None = None,
) -> tuple[str, datetime]:
    """
    Create a signed JWT refresh token.

    Each token gets a random ``jti`` so two tokens issued within the same
    second never collide on their stored hash.

    Returns:
        Tuple of (encoded token, UTC expiry for the database row)
    """
    if expires_delta is None:
        expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    now = datetime.now(UTC)
    expires_at = now + expires_delta
    payload = _base_payload(account_id, role, device_id)
    payload.update(
        {
            "type": REFRESH_TOKEN_TYPE,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": expires_at,
        }
    )

    token = jwt.encode(payload, settings.REFRESH_SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, expires_at


def hash_refresh_token(token: str) -> str:
    """SHA-256 hex digest used to look refresh tokens up without storing them."""
    return hashlib.sha256(token.encode()).hexdigest()


def _decode(token: str, secret: str, expected_type: str) -> TokenClaims | None:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": True, "verify_signature": True, "require": ["exp", "sub"]},
        )
    except jwt.PyJWTError:
        # Expired, bad signature, malformed
        return None

    if payload.get("type") != expected_type:
        return None

    try:
        account_id = int(payload["sub"])
        role = UserRole(payload.get("role"))
    except (KeyError, ValueError, TypeError):
        return None

    device_id = payload.get("device_id") if role.is_device_bound else None

    return TokenClaims(
        account_id=account_id,
        role=role,
        device_id=device_id,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        token_id=payload.get("jti"),
    )


def verify_access_token(token: str) -> TokenClaims | None:
    """
    Verify and decode a JWT access token.

    Returns:
        Token claims if the token is valid, None otherwise
    """
    return _decode(token, settings.SECRET_KEY, ACCESS_TOKEN_TYPE)


def verify_refresh_token(token: str) -> TokenClaims | None:
    """
    Verify and decode a JWT refresh token (signature and expiry only).

    The caller must still check the stored row: a token that verifies here
    may have been revoked server-side.
    """
    return _decode(token, settings.REFRESH_SECRET_KEY, REFRESH_TOKEN_TYPE)
