"""Tests for audit dispatch and the audit arq job."""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from arq import Retry
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from academy.config import AuditAction
from academy.models.account import Accounts
from academy.models.audit_log import AuditLogs
from academy.services import audit
from academy.tasks import queue
from academy.tasks.audit_jobs import record_audit_event_job


@pytest.mark.unit
class TestRecordEvent:
    async def test_enqueues_audit_job(self, mock_enqueue):
        await audit.record_event(1, AuditAction.FORCE_LOGOUT, "Forced logout", {"student_id": 2})

        mock_enqueue.assert_awaited_once_with(
            audit.AUDIT_JOB,
            account_id=1,
            action=AuditAction.FORCE_LOGOUT,
            description="Forced logout",
            details={"student_id": 2},
        )

    async def test_dropped_event_does_not_raise(self, mock_enqueue):
        mock_enqueue.return_value = None

        await audit.record_event(1, AuditAction.DEVICE_RESET, "Reset")

    async def test_dispatch_error_is_swallowed(self, mock_enqueue):
        mock_enqueue.side_effect = RuntimeError("queue exploded")

        await audit.record_event(1, AuditAction.DEVICE_RESET, "Reset")


@pytest.mark.unit
class TestEnqueueJob:
    async def test_returns_job_id(self):
        pool = AsyncMock()
        pool.enqueue_job.return_value = Mock(job_id="abc123")

        with patch.object(queue, "get_queue", AsyncMock(return_value=pool)):
            job_id = await queue.enqueue_job("record_audit_event_job", action="X")

        assert job_id == "abc123"
        pool.enqueue_job.assert_awaited_once_with("record_audit_event_job", action="X")

    async def test_redis_unavailable_returns_none(self):
        with patch.object(queue, "get_queue", AsyncMock(side_effect=ConnectionError("refused"))):
            assert await queue.enqueue_job("record_audit_event_job") is None

    async def test_duplicate_job_returns_none(self):
        pool = AsyncMock()
        pool.enqueue_job.return_value = None

        with patch.object(queue, "get_queue", AsyncMock(return_value=pool)):
            assert await queue.enqueue_job("record_audit_event_job") is None


@pytest.mark.unit
class TestRecordAuditEventJob:
    async def test_writes_audit_row(self, engine, db_session: AsyncSession, admin: Accounts):
        session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        with patch("academy.tasks.audit_jobs.get_async_session", session_maker):
            await record_audit_event_job(
                {"job_try": 1},
                account_id=admin.id,
                action=AuditAction.RESET_ALL_DEVICES,
                description="Reset devices for all 3 students",
                details={"count": 3},
            )

        row = (await db_session.execute(select(AuditLogs))).scalar_one()
        assert row.user_id == admin.id
        assert row.action == AuditAction.RESET_ALL_DEVICES
        assert row.details == {"count": 3}

    async def test_database_error_retries(self):
        session = AsyncMock()
        session.add = MagicMock()
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("gone away"))
        session.__aenter__.return_value = session

        with patch("academy.tasks.audit_jobs.get_async_session", return_value=session):
            with pytest.raises(Retry) as exc_info:
                await record_audit_event_job(
                    {"job_try": 2}, account_id=1, action=AuditAction.DEVICE_RESET, description="x"
                )

        assert exc_info.value.defer_score == 10_000
