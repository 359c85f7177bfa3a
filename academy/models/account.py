"""
SQLModel-based Account models with inheritance for security

This module defines the Accounts database model using SQLModel, which combines
SQLAlchemy and Pydantic functionality. The inheritance structure is:

AccountBase (shared public fields)
    ├─> Accounts (database table, adds internal/sensitive fields)
    └─> AccountResponse (API schema, defined in academy/schemas)

Note: The role column decides whether device-binding policy applies at all;
only students are device-bound (see UserRole.is_device_bound).
"""

from datetime import datetime

from sqlalchemy import Index, func
from sqlmodel import Field, SQLModel

from academy.config import AccountStatus, UserRole
from academy.utils.timezone import UTCDateTime, utc_now


class AccountBase(SQLModel):
    """
    Base model with shared public fields for Accounts.

    These fields are safe to expose via the API.
    """

    name: str = Field(max_length=100)
    email: str = Field(max_length=255)
    phone: str | None = Field(default=None, max_length=20)
    role: str = Field(default=UserRole.STUDENT.value, max_length=20)
    status: str = Field(default=AccountStatus.ACTIVE, max_length=20)


class Accounts(AccountBase, table=True):
    """
    Database table for accounts.

    Internal/sensitive fields (should NOT be exposed via public API):
    - password_hash: Authentication (highly sensitive)
    """

    __tablename__ = "accounts"

    __table_args__ = (
        Index("idx_accounts_email", "email", unique=True),
        Index("idx_accounts_role", "role"),
    )

    id: int | None = Field(default=None, primary_key=True)

    password_hash: str = Field(max_length=255)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=UTCDateTime,
        sa_column_kwargs={"server_default": func.now()},
    )
    last_login_at: datetime | None = Field(default=None, sa_type=UTCDateTime)

    @property
    def user_role(self) -> UserRole:
        return UserRole(self.role)

    @property
    def is_blocked(self) -> bool:
        return self.status == AccountStatus.BLOCKED
