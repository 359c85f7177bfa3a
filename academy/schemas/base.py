"""
Base schema with UTC datetime serialization.

Provides UTCDatetime type annotation that serializes datetimes in UTC with a
Z suffix. Naive values are read as UTC.
"""

from datetime import datetime
from typing import Annotated

from pydantic import PlainSerializer

from academy.utils.timezone import as_utc


def _format_utc(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return as_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


# Custom datetime type that serializes with Z suffix for UTC
# Usage: last_login_at: UTCDatetime instead of last_login_at: datetime
UTCDatetime = Annotated[
    datetime,
    PlainSerializer(_format_utc, return_type=str),
]

# Optional version for nullable datetime fields
UTCDatetimeOptional = Annotated[
    datetime | None,
    PlainSerializer(_format_utc, return_type=str | None),
]
