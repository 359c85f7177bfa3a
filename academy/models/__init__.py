"""
SQLModel table models.

For modifications:
1. Edit the appropriate model file in academy/models/
2. Create an Alembic migration to reflect the changes
"""

from academy.models.account import AccountBase, Accounts
from academy.models.audit_log import AuditLogs
from academy.models.device import UserDeviceBase, UserDevices
from academy.models.refresh_token import RefreshTokens
from academy.models.system_setting import SystemSettings

__all__ = [
    "AccountBase",
    "Accounts",
    "AuditLogs",
    "RefreshTokens",
    "SystemSettings",
    "UserDeviceBase",
    "UserDevices",
]
