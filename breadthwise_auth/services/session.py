"""
Session lifecycle: issuing, rotating and revoking token pairs.

Flow:
1. GitHub callback -> upsert user -> issue access + refresh token
2. Refresh -> atomically redeem the presented refresh token -> issue a new pair
3. Logout -> revoke the presented refresh token (best effort)
4. Revoke all -> revoke every refresh token of the user

Every public method commits its own unit of work. Raw refresh tokens are
returned to the caller exactly once and never logged or stored.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from breadthwise_auth.config import Platform, Settings
from breadthwise_auth.core.errors import InvalidRefreshTokenError, UserNotFoundError
from breadthwise_auth.core.fingerprint import generate_fingerprint
from breadthwise_auth.core.logging import get_logger
from breadthwise_auth.core.platform import RequestContext
from breadthwise_auth.core.security import (
    create_access_token,
    create_refresh_token,
    hash_refresh_token,
)
from breadthwise_auth.models.user import Users
from breadthwise_auth.services.github import GitHubProfile
from breadthwise_auth.services.refresh_token_store import RefreshTokenStore
from breadthwise_auth.services.user import get_user_by_id, upsert_by_github_id

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenPair:
    """A freshly issued access/refresh pair. Never persisted."""

    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime
    expires_in: int  # access token lifetime, seconds
    refresh_expires_in: int  # refresh token lifetime, seconds


@dataclass(frozen=True)
class SessionResult:
    """A user together with the pair just issued to them."""

    user: Users
    tokens: TokenPair


class SessionService:
    """Issues and rotates sessions for authenticated users."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings
        self.store = RefreshTokenStore(db)

    async def handle_provider_callback(
        self, profile: GitHubProfile, ctx: RequestContext
    ) -> SessionResult:
        """Upsert the GitHub user and issue their first pair on this client."""
        user = await upsert_by_github_id(self.db, profile)
        # Mobile callbacks arrive from the system browser, not the app; the
        # first refresh from the app binds its fingerprint.
        tokens = await self._issue(user, ctx, fingerprint=ctx.platform != Platform.MOBILE)
        await self.db.commit()

        logger.info("user_logged_in", user_id=user.id, platform=ctx.platform)
        return SessionResult(user=user, tokens=tokens)

    async def issue(self, user: Users, ctx: RequestContext) -> TokenPair:
        """Issue a new pair for a user and commit the refresh token record."""
        tokens = await self._issue(user, ctx)
        await self.db.commit()
        return tokens

    async def _issue(
        self, user: Users, ctx: RequestContext, fingerprint: bool = True
    ) -> TokenPair:
        now = datetime.now(UTC).replace(microsecond=0)

        bound = None
        if fingerprint and self.settings.ENABLE_FINGERPRINTING:
            bound = generate_fingerprint(ctx)
        access_token, access_expires_at = create_access_token(
            user, ctx.platform, self.settings, fingerprint=bound, now=now
        )

        refresh_token = create_refresh_token(self.settings)
        refresh_lifetime = timedelta(days=self.settings.refresh_token_days(ctx.platform))
        refresh_expires_at = now + refresh_lifetime

        await self.store.create(
            user.id,
            hash_refresh_token(refresh_token),
            refresh_expires_at,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )

        logger.debug(
            "token_pair_issued",
            user_id=user.id,
            platform=ctx.platform,
            refresh_expires_at=refresh_expires_at.isoformat(),
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            access_expires_at=access_expires_at,
            refresh_expires_at=refresh_expires_at,
            expires_in=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            refresh_expires_in=int(refresh_lifetime.total_seconds()),
        )

    async def refresh(self, raw_refresh_token: str, ctx: RequestContext) -> SessionResult:
        """
        Rotate a refresh token.

        The presented token is redeemed (found valid and revoked in one
        atomic step) before anything else runs, so two concurrent refreshes
        of the same token cannot both succeed.

        Raises:
            InvalidRefreshTokenError: Unknown, expired or already used token
            UserNotFoundError: The token's owner no longer exists
        """
        record = await self.store.redeem(hash_refresh_token(raw_refresh_token))
        if record is None:
            await self.db.rollback()
            logger.warning("refresh_token_rejected", platform=ctx.platform)
            raise InvalidRefreshTokenError()

        user = await get_user_by_id(self.db, record.user_id)
        if user is None:
            # Keep the token revoked, its owner is gone
            await self.db.commit()
            logger.warning("refresh_token_user_missing", user_id=record.user_id)
            raise UserNotFoundError()

        tokens = await self._issue(user, ctx)
        await self.db.commit()

        logger.info("refresh_token_rotated", user_id=user.id, platform=ctx.platform)
        return SessionResult(user=user, tokens=tokens)

    async def logout(self, raw_refresh_token: str | None = None, user_id: str | None = None) -> None:
        """
        Revoke the presented refresh token, if any.

        Never fails for a missing, unknown or already revoked token, and never
        touches the user's other sessions.
        """
        if raw_refresh_token:
            await self.store.revoke(hash_refresh_token(raw_refresh_token))
            await self.db.commit()

        logger.info("user_logged_out", user_id=user_id, token_presented=bool(raw_refresh_token))

    async def revoke_all(self, user_id: str) -> int:
        """Revoke every refresh token of a user. Returns the number revoked."""
        count = await self.store.revoke_all_for_user(user_id)
        await self.db.commit()
        return count
