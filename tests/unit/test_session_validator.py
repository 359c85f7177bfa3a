"""Tests for per-request session and device validation."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import AuditAction, UserRole
from academy.core.errors import DeviceSessionInvalid, SessionExpiredElsewhere
from academy.core.security import TokenClaims
from academy.models.account import Accounts
from academy.services.device_registry import DeviceRegistry
from academy.services.session_validator import SessionValidator
from academy.utils.timezone import utc_now

BOUND = "b" * 64
OTHER = "c" * 64


def claims_for(account: Accounts, device_id: str | None = BOUND) -> TokenClaims:
    return TokenClaims(
        account_id=account.id,
        role=account.user_role,
        device_id=device_id if account.user_role is UserRole.STUDENT else None,
        expires_at=datetime.now(UTC) + timedelta(minutes=15),
    )


@pytest.fixture
async def live_session(db_session: AsyncSession, student: Accounts) -> None:
    DeviceRegistry(db_session).add_refresh_token(
        student.id, token_hash="live", expires_at=utc_now() + timedelta(days=1), device_id=BOUND
    )
    await db_session.commit()


def db_down() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("database is unavailable"))


@pytest.mark.unit
class TestLiveSession:
    async def test_no_live_session_fails(self, db_session: AsyncSession, student: Accounts):
        with pytest.raises(SessionExpiredElsewhere):
            await SessionValidator(db_session).validate(student, claims_for(student), BOUND)

    async def test_revoked_session_fails(
        self, db_session: AsyncSession, student: Accounts, live_session
    ):
        await DeviceRegistry(db_session).revoke_all([student.id])
        await db_session.commit()

        with pytest.raises(SessionExpiredElsewhere):
            await SessionValidator(db_session).validate(student, claims_for(student), BOUND)

    async def test_expired_row_is_not_live(self, db_session: AsyncSession, student: Accounts):
        DeviceRegistry(db_session).add_refresh_token(
            student.id, token_hash="old", expires_at=utc_now() - timedelta(minutes=1)
        )
        await db_session.commit()

        with pytest.raises(SessionExpiredElsewhere):
            await SessionValidator(db_session).validate(student, claims_for(student), BOUND)

    async def test_teacher_skips_all_checks(self, db_session: AsyncSession, teacher: Accounts):
        # No refresh row at all, no header
        await SessionValidator(db_session).validate(teacher, claims_for(teacher), None)

    async def test_lookup_failure_fails_open(self, db_session: AsyncSession, student: Accounts):
        validator = SessionValidator(db_session)
        validator.registry.has_live_session = AsyncMock(side_effect=db_down())

        await validator.ensure_live_session(student.id)


@pytest.mark.unit
class TestEnforcementDisabled:
    async def test_fingerprint_is_not_checked(
        self, db_session: AsyncSession, student: Accounts, live_session
    ):
        await SessionValidator(db_session).validate(student, claims_for(student), OTHER)
        await SessionValidator(db_session).validate(student, claims_for(student), None)


@pytest.mark.unit
@pytest.mark.usefixtures("enforcement", "live_session")
class TestDeviceBinding:
    async def test_matching_fingerprint_passes(self, db_session: AsyncSession, student: Accounts):
        await SessionValidator(db_session).validate(student, claims_for(student), BOUND)

    async def test_missing_header_fails_without_revoking(
        self, db_session: AsyncSession, student: Accounts
    ):
        with pytest.raises(DeviceSessionInvalid) as exc_info:
            await SessionValidator(db_session).validate(student, claims_for(student), None)

        assert exc_info.value.code == "DEVICE_SESSION_INVALID"
        assert await DeviceRegistry(db_session).count_live_sessions(student.id) == 1

    async def test_mismatch_fails_and_revokes(
        self, db_session: AsyncSession, student: Accounts, mock_enqueue
    ):
        student_id = student.id

        with pytest.raises(DeviceSessionInvalid):
            await SessionValidator(db_session).validate(student, claims_for(student), OTHER)

        assert await DeviceRegistry(db_session).count_live_sessions(student_id) == 0
        mock_enqueue.assert_awaited_once()
        assert mock_enqueue.await_args.kwargs["action"] == AuditAction.DEVICE_SESSION_INVALIDATED

    async def test_non_ascii_header_is_a_mismatch(
        self, db_session: AsyncSession, student: Accounts
    ):
        student_id = student.id

        with pytest.raises(DeviceSessionInvalid):
            await SessionValidator(db_session).validate(student, claims_for(student), "caf\xe9")

        assert await DeviceRegistry(db_session).count_live_sessions(student_id) == 0

    async def test_legacy_token_without_device_passes(
        self, db_session: AsyncSession, student: Accounts
    ):
        await SessionValidator(db_session).validate(student, claims_for(student, None), OTHER)

    async def test_match_refreshes_device_activity(
        self, db_session: AsyncSession, student: Accounts
    ):
        registry = DeviceRegistry(db_session)
        device = await registry.register_device(student.id, BOUND, "Windows PC")
        stale = utc_now() - timedelta(hours=3)
        device.last_active_at = stale
        await db_session.commit()

        await SessionValidator(db_session).validate(student, claims_for(student), BOUND)

        await db_session.refresh(device)
        assert device.last_active_at > stale

    async def test_activity_touch_never_creates_records(
        self, db_session: AsyncSession, student: Accounts
    ):
        await SessionValidator(db_session).validate(student, claims_for(student), BOUND)
        assert await DeviceRegistry(db_session).count_devices(student.id) == 0
