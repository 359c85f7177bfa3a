"""Audit log background jobs for arq worker."""

from typing import Any

from arq import Retry
from sqlalchemy.exc import SQLAlchemyError

from academy.core.database import get_async_session
from academy.core.logging import bind_context, get_logger
from academy.models.audit_log import AuditLogs

logger = get_logger(__name__)


async def record_audit_event_job(
    ctx: dict[str, Any],
    account_id: int | None,
    action: str,
    description: str,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Persist one audit event.

    Args:
        ctx: ARQ context dict
        account_id: Account that performed the action
        action: AuditAction constant
        description: Human-readable summary
        details: JSON details

    Raises:
        Retry: If the database write fails (will retry up to max_tries)
    """
    bind_context(task="record_audit_event", action=action)

    try:
        async with get_async_session() as db:
            db.add(
                AuditLogs(
                    user_id=account_id,
                    action=action,
                    description=description[:500],
                    details=details or None,
                )
            )
            await db.commit()
    except SQLAlchemyError as e:
        logger.error(
            "audit_event_write_failed",
            account_id=account_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        # Retry with linear backoff (5s, 10s, ...)
        raise Retry(defer=ctx["job_try"] * 5) from e

    logger.info("audit_event_recorded", account_id=account_id)
