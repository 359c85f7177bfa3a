"""
ARQ worker configuration and job definitions.

Run worker with: uv run arq academy.tasks.worker.WorkerSettings
"""

from typing import Any

from arq.connections import RedisSettings
from arq.worker import func

from academy.config import settings
from academy.core.logging import configure_logging, get_logger
from academy.tasks.audit_jobs import record_audit_event_job

logger = get_logger(__name__)


async def startup(ctx: dict[str, Any]) -> None:
    """Worker startup - initialize logging."""
    configure_logging()
    logger.info("arq_worker_starting", redis_url=settings.ARQ_REDIS_URL)


async def shutdown(ctx: dict[str, Any]) -> None:
    """Worker shutdown - release database connections."""
    from academy.core.database import engine

    await engine.dispose()
    logger.info("arq_worker_shutdown")


class WorkerSettings:
    """ARQ worker configuration."""

    redis_settings = RedisSettings.from_dsn(settings.ARQ_REDIS_URL)

    # Worker behavior
    max_jobs = 10
    job_timeout = 60
    keep_result = settings.ARQ_KEEP_RESULT

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    # Job functions
    functions = [
        func(record_audit_event_job, max_tries=settings.ARQ_MAX_TRIES),
    ]
