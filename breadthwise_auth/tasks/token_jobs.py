"""Refresh token housekeeping jobs for arq worker."""

from typing import Any

from arq import Retry

from breadthwise_auth.core.logging import bind_context, get_logger
from breadthwise_auth.services.refresh_token_store import RefreshTokenStore

logger = get_logger(__name__)


async def purge_expired_refresh_tokens(ctx: dict[str, Any]) -> dict[str, int]:
    """
    Delete refresh token rows past their expiry.

    Expired rows are already rejected on use; this only keeps the table small.

    Args:
        ctx: ARQ context dict (session_factory is set by worker startup)

    Returns:
        dict with the number of deleted rows

    Raises:
        Retry: If the database operation fails
    """
    bind_context(task="purge_expired_refresh_tokens")

    try:
        async with ctx["session_factory"]() as db:
            deleted = await RefreshTokenStore(db).delete_expired()
            await db.commit()

        logger.info("purge_expired_refresh_tokens_completed", deleted=deleted)
        return {"deleted": deleted}

    except Exception as e:
        logger.error(
            "purge_expired_refresh_tokens_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise Retry(defer=ctx.get("job_try", 1) * 5) from e
