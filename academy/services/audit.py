"""
Audit sink.

``record_event`` is fire-and-forget: it hands the event to the arq queue after
the caller's primary write has committed and never raises. The write itself
happens in ``record_audit_event_job`` with the worker's own retry policy.
"""

from typing import Any

from academy.core.logging import get_logger
from academy.tasks.queue import enqueue_job

logger = get_logger(__name__)

AUDIT_JOB = "record_audit_event_job"


async def record_event(
    account_id: int | None,
    action: str,
    description: str,
    metadata: dict[str, Any] | None = None,
) -> None:
    """
    Dispatch an audit event.

    Args:
        account_id: Account that performed the action (admin id for overrides)
        action: AuditAction constant
        description: Human-readable summary
        metadata: Optional JSON-serialisable details
    """
    try:
        job_id = await enqueue_job(
            AUDIT_JOB,
            account_id=account_id,
            action=action,
            description=description,
            details=metadata or {},
        )
    except Exception:
        logger.warning("audit_dispatch_failed", action=action, account_id=account_id, exc_info=True)
        return

    if job_id is None:
        logger.warning("audit_event_dropped", action=action, account_id=account_id)
