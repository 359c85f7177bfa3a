"""
SQLModel-based RefreshToken model for JWT authentication.

Security features:
- Stores hashed tokens (not plaintext)
- Revocation support (revoked flag) so a still-valid signed token can be
  killed server-side
- Optional device binding: student sessions record the fingerprint they were
  issued to
- User agent and IP tracking for security auditing
"""

from datetime import datetime

from sqlalchemy import ForeignKeyConstraint, Index, func
from sqlmodel import Field, SQLModel

from academy.utils.timezone import UTCDateTime, utc_now


class RefreshTokens(SQLModel, table=True):
    """
    Database table for refresh tokens.

    A token is live while revoked is false and expires_at is in the future.
    Students hold at most one live token at a time; teachers and admins may
    hold several, never device-bound.
    """

    __tablename__ = "refresh_tokens"

    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"],
            ["accounts.id"],
            ondelete="CASCADE",
            onupdate="CASCADE",
            name="fk_refresh_tokens_user_id",
        ),
        Index("idx_refresh_tokens_user_id", "user_id"),
        Index("idx_refresh_tokens_token_hash", "token_hash", unique=True),
        Index("idx_refresh_tokens_live", "user_id", "revoked", "expires_at"),
    )

    id: int | None = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="accounts.id")

    # Token (hashed for security - never store plaintext!)
    token_hash: str = Field(max_length=64)

    # Bound fingerprint (students only)
    device_id: str | None = Field(default=None, max_length=64)

    # Expiration
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=UTCDateTime,
        sa_column_kwargs={"server_default": func.now()},
    )
    expires_at: datetime = Field(sa_type=UTCDateTime)

    # Revocation
    revoked: bool = Field(default=False)
    revoked_at: datetime | None = Field(default=None, sa_type=UTCDateTime)

    # Security tracking
    ip_address: str | None = Field(default=None, max_length=45)
    user_agent: str | None = Field(default=None, max_length=255)
