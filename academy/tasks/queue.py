"""
Queue client for enqueuing arq jobs from request handlers and services.

Jobs enqueued here are side effects (audit events) that must never break the
caller: enqueue_job logs and swallows every error and returns None.
"""

from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings

from academy.config import settings
from academy.core.logging import get_logger

logger = get_logger(__name__)

# Global pool instance (created on first use)
_pool: ArqRedis | None = None


async def get_queue() -> ArqRedis:
    """
    Get or create the arq Redis connection pool.

    Connection retries are disabled: a request enqueueing a side-effect job
    should not stall while Redis is down.
    """
    global _pool
    if _pool is None:
        redis_settings = RedisSettings.from_dsn(settings.ARQ_REDIS_URL)
        redis_settings.conn_retries = 0
        _pool = await create_pool(redis_settings)
        logger.info("arq_pool_created", redis_url=settings.ARQ_REDIS_URL)
    return _pool


async def enqueue_job(function_name: str, *args: Any, **kwargs: Any) -> str | None:
    """
    Enqueue a job to the arq worker.

    Args:
        function_name: Name of registered arq function
        *args: Positional arguments for the function
        **kwargs: Keyword arguments for the function

    Returns:
        Job ID if enqueued successfully, None otherwise

    Example:
        await enqueue_job("record_audit_event_job", account_id=1, action="FORCE_LOGOUT")
    """
    try:
        pool = await get_queue()
        job = await pool.enqueue_job(function_name, *args, **kwargs)
    except Exception as e:
        logger.error(
            "job_enqueue_error",
            function=function_name,
            error=str(e),
            error_type=type(e).__name__,
        )
        return None

    if job is None:
        # arq returns None when a job with the same id already exists
        logger.warning("job_enqueue_failed", function=function_name)
        return None

    logger.debug("job_enqueued", function=function_name, job_id=job.job_id)
    return job.job_id


async def close_queue() -> None:
    """Close arq Redis connection pool (call on shutdown)."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("arq_pool_closed")
