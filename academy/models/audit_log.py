"""
SQLModel-based AuditLog model.

Audit trail for security-relevant actions (admin device overrides, password
changes, sessions killed by a fingerprint mismatch). Rows are written by the
record_audit_event_job arq job, never inline with the primary operation.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, ForeignKeyConstraint, Index, func
from sqlmodel import Column, Field, SQLModel

from academy.utils.timezone import UTCDateTime, utc_now


class AuditLogs(SQLModel, table=True):
    """Audit log entries."""

    __tablename__ = "audit_logs"

    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"],
            ["accounts.id"],
            ondelete="SET NULL",
            onupdate="CASCADE",
            name="fk_audit_logs_user_id",
        ),
        Index("idx_audit_logs_user_id", "user_id"),
        Index("idx_audit_logs_action", "action"),
        Index("idx_audit_logs_created_at", "created_at"),
    )

    id: int | None = Field(default=None, primary_key=True)

    # Account that performed the action
    user_id: int | None = Field(default=None, foreign_key="accounts.id")

    # AuditAction constant
    action: str = Field(max_length=50)
    description: str = Field(default="", max_length=500)

    # JSON details with action context
    # Examples:
    # - DEVICE_BLOCKED: {"device_record_id": 7, "student_id": 12}
    # - RESET_ALL_DEVICES: {"count": 140}
    details: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=UTCDateTime,
        sa_column_kwargs={"server_default": func.now()},
    )
