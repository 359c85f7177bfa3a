"""
SQLModel-based SystemSetting model.

Process-wide key/value settings shared by every server instance. Values are
stored as strings and parsed by the settings store; the device policy reads
them fresh on every decision.
"""

from datetime import datetime

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from academy.utils.timezone import UTCDateTime, utc_now


class SystemSettings(SQLModel, table=True):
    """Database table for shared system settings."""

    __tablename__ = "system_settings"

    __table_args__ = (Index("idx_system_settings_key", "setting_key", unique=True),)

    id: int | None = Field(default=None, primary_key=True)

    setting_key: str = Field(max_length=100)
    setting_value: str = Field(max_length=255)
    description: str | None = Field(default=None, max_length=255)

    # Admin who last changed the value (no FK: settings outlive accounts)
    updated_by: int | None = Field(default=None)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
