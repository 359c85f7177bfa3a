"""Account response schemas."""

from academy.models.account import AccountBase
from academy.schemas.base import UTCDatetime, UTCDatetimeOptional


class AccountResponse(AccountBase):
    """Public view of an account."""

    id: int
    created_at: UTCDatetime
    last_login_at: UTCDatetimeOptional = None
