"""
ARQ worker configuration and job definitions.

Run worker with: arq breadthwise_auth.tasks.worker.WorkerSettings
"""

from typing import Any

from arq import cron
from arq.connections import RedisSettings

from breadthwise_auth.config import get_settings
from breadthwise_auth.core.database import create_engine, create_session_factory
from breadthwise_auth.core.logging import configure_logging, get_logger
from breadthwise_auth.tasks.token_jobs import purge_expired_refresh_tokens

settings = get_settings()
logger = get_logger(__name__)


def purge_minutes(interval: int) -> set[int]:
    """Minutes of the hour at which the purge cron fires."""
    return set(range(0, 60, interval))


async def startup(ctx: dict[str, Any]) -> None:
    """Worker startup - create the database engine shared by jobs."""
    configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)
    ctx["engine"] = create_engine(settings)
    ctx["session_factory"] = create_session_factory(ctx["engine"])
    logger.info("arq_worker_starting", redis_url=settings.ARQ_REDIS_URL)


async def shutdown(ctx: dict[str, Any]) -> None:
    """Worker shutdown - cleanup resources."""
    engine = ctx.get("engine")
    if engine is not None:
        await engine.dispose()
    logger.info("arq_worker_shutdown")


class WorkerSettings:
    """ARQ worker configuration."""

    # Redis connection from settings
    redis_settings = RedisSettings.from_dsn(settings.ARQ_REDIS_URL)

    # Worker behavior
    max_jobs = 10
    job_timeout = 300  # 5 minutes max per job
    keep_result = settings.ARQ_KEEP_RESULT

    # Lifecycle hooks
    on_startup = startup
    on_shutdown = shutdown

    cron_jobs = [
        cron(
            purge_expired_refresh_tokens,  # type: ignore[arg-type]
            minute=purge_minutes(settings.TOKEN_PURGE_INTERVAL_MINUTES),
            run_at_startup=True,
            max_tries=3,
        ),
    ]
