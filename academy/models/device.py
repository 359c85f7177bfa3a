"""
SQLModel-based UserDevice model for the device registry.

One row per (account, device fingerprint) pair. Rows are created on the first
admitted login from a new fingerprint, updated on every later login or
activity from it, and deleted wholesale when an admin resets the account.
"""

from datetime import datetime

from sqlalchemy import ForeignKeyConstraint, Index, UniqueConstraint, func
from sqlmodel import Field, SQLModel

from academy.utils.timezone import UTCDateTime, utc_now


class UserDeviceBase(SQLModel):
    """Public fields of a device record."""

    device_id: str = Field(max_length=64)
    device_name: str = Field(default="Unknown Device", max_length=100)
    ip_address: str | None = Field(default=None, max_length=45)  # Supports IPv6
    first_seen_at: datetime = Field(
        default_factory=utc_now,
        sa_type=UTCDateTime,
        sa_column_kwargs={"server_default": func.now()},
    )
    last_login_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    last_active_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    login_count: int = Field(default=1)
    # Account-wide count of logins from fingerprints not yet on file (passive abuse signal)
    device_changes_count: int = Field(default=0)
    is_blocked: bool = Field(default=False)


class UserDevices(UserDeviceBase, table=True):
    """Database table for devices registered to accounts."""

    __tablename__ = "user_devices"

    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"],
            ["accounts.id"],
            ondelete="CASCADE",
            onupdate="CASCADE",
            name="fk_user_devices_user_id",
        ),
        UniqueConstraint("user_id", "device_id", name="uq_user_devices_user_device"),
        Index("idx_user_devices_user_id", "user_id"),
        Index("idx_user_devices_last_login_at", "last_login_at"),
    )

    id: int | None = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="accounts.id")

    user_agent: str | None = Field(default=None, max_length=512)
