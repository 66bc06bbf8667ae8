"""
Refresh token persistence.

Only SHA-256 hashes of refresh tokens reach this module. Every method flushes
but never commits: the caller owns the transaction (the get_db dependency or
SessionService).
"""

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from breadthwise_auth.core.database import utcnow
from breadthwise_auth.core.logging import get_logger
from breadthwise_auth.models.refresh_token import RefreshTokens

logger = get_logger(__name__)


class RefreshTokenStore:
    """Data access for the refresh_tokens table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(
        self,
        user_id: str,
        token_hash: str,
        expires_at: datetime,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> RefreshTokens:
        """Persist a new, unrevoked refresh token record."""
        record = RefreshTokens(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            ip_address=ip_address[:45] if ip_address else None,
            user_agent=user_agent[:255] if user_agent else None,
        )
        self.db.add(record)
        await self.db.flush()
        return record

    async def find_valid(self, token_hash: str) -> RefreshTokens | None:
        """Return the record for token_hash if it is neither revoked nor expired."""
        result = await self.db.execute(
            select(RefreshTokens).where(
                RefreshTokens.token_hash == token_hash,  # type: ignore[arg-type]
                RefreshTokens.revoked_at.is_(None),  # type: ignore[union-attr]
                RefreshTokens.expires_at > utcnow(),  # type: ignore[arg-type]
            )
        )
        return result.scalar_one_or_none()

    async def redeem(self, token_hash: str) -> RefreshTokens | None:
        """
        Atomically find a valid token and revoke it.

        A single conditional UPDATE decides the outcome, so of any number of
        concurrent redeems of the same hash at most one sees rowcount == 1.
        This must be the first statement of its transaction: on SQLite it
        takes the write lock up front, so a competing transaction waits
        instead of failing the lock upgrade.

        Returns:
            The now-revoked record, or None if the token was unknown,
            expired or already revoked
        """
        now = utcnow()
        result = await self.db.execute(
            update(RefreshTokens)
            .where(
                RefreshTokens.token_hash == token_hash,  # type: ignore[arg-type]
                RefreshTokens.revoked_at.is_(None),  # type: ignore[union-attr]
                RefreshTokens.expires_at > now,  # type: ignore[arg-type]
            )
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            return None

        # The bulk UPDATE bypassed the identity map; reload the row
        record = await self.db.execute(
            select(RefreshTokens)
            .where(RefreshTokens.token_hash == token_hash)  # type: ignore[arg-type]
            .execution_options(populate_existing=True)
        )
        return record.scalar_one()

    async def revoke(self, token_hash: str) -> None:
        """Revoke a token if it exists and is not revoked yet. Idempotent."""
        await self.db.execute(
            update(RefreshTokens)
            .where(
                RefreshTokens.token_hash == token_hash,  # type: ignore[arg-type]
                RefreshTokens.revoked_at.is_(None),  # type: ignore[union-attr]
            )
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    async def revoke_all_for_user(self, user_id: str) -> int:
        """
        Revoke every unrevoked token belonging to a user.

        Returns:
            Count of tokens revoked by this call
        """
        result = await self.db.execute(
            update(RefreshTokens)
            .where(
                RefreshTokens.user_id == user_id,  # type: ignore[arg-type]
                RefreshTokens.revoked_at.is_(None),  # type: ignore[union-attr]
            )
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        count: int = result.rowcount  # type: ignore[attr-defined]
        logger.info("refresh_tokens_revoked_for_user", user_id=user_id, count=count)
        return count

    async def delete_expired(self) -> int:
        """
        Delete tokens past their expiry, revoked or not.

        Revoked rows that have not expired yet are kept for auditing.

        Returns:
            Count of deleted rows
        """
        result = await self.db.execute(
            delete(RefreshTokens)
            .where(RefreshTokens.expires_at <= utcnow())  # type: ignore[arg-type]
            .execution_options(synchronize_session=False)
        )
        count: int = result.rowcount  # type: ignore[attr-defined]
        if count:
            logger.info("expired_refresh_tokens_deleted", count=count)
        return count
