"""User lookup and GitHub profile upsert."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from breadthwise_auth.core.database import utcnow
from breadthwise_auth.core.logging import get_logger
from breadthwise_auth.models.user import Users
from breadthwise_auth.services.github import GitHubProfile

logger = get_logger(__name__)


async def get_user_by_id(db: AsyncSession, user_id: str) -> Users | None:
    """Fetch a user by primary key."""
    result = await db.execute(select(Users).where(Users.id == user_id))  # type: ignore[arg-type]
    return result.scalar_one_or_none()


async def get_user_by_github_id(db: AsyncSession, github_id: str) -> Users | None:
    """Fetch a user by their GitHub identity."""
    result = await db.execute(
        select(Users).where(Users.github_id == github_id)  # type: ignore[arg-type]
    )
    return result.scalar_one_or_none()


async def release_identity_conflicts(db: AsyncSession, profile: GitHubProfile) -> None:
    """
    Free the username and email a GitHub profile is about to take.

    GitHub logins and emails can move between accounts. A stale row still
    holding one of them would break the unique indexes, so its username gets
    its github_id appended and its email is cleared.
    """
    others = Users.github_id != profile.id  # type: ignore[arg-type]

    result = await db.execute(
        select(Users).where(Users.username == profile.login, others)  # type: ignore[arg-type]
    )
    for stale in result.scalars():
        stale.username = f"{stale.username}-{stale.github_id}"
        stale.updated_at = utcnow()
        logger.warning(
            "user_username_released", user_id=stale.id, github_id=stale.github_id
        )

    if profile.email:
        result = await db.execute(
            update(Users)
            .where(Users.email == profile.email, others)  # type: ignore[arg-type]
            .values(email=None, updated_at=utcnow())
        )
        if result.rowcount:
            logger.warning("user_email_released", github_id=profile.id)

    await db.flush()


async def upsert_by_github_id(db: AsyncSession, profile: GitHubProfile) -> Users:
    """
    Create or update the user matching a GitHub profile.

    github_id is the key: a returning user keeps their id and gets the
    latest username, email, display name and avatar copied over.

    Args:
        db: Database session
        profile: Profile returned by GitHub

    Returns:
        The persisted user (flushed, not committed)
    """
    await release_identity_conflicts(db, profile)
    user = await get_user_by_github_id(db, profile.id)

    if user is None:
        user = Users(
            github_id=profile.id,
            username=profile.login,
            email=profile.email,
            display_name=profile.name,
            avatar_url=profile.avatar_url,
        )
        db.add(user)
        await db.flush()
        logger.info("user_created", user_id=user.id, github_id=profile.id)
        return user

    user.username = profile.login
    user.email = profile.email
    user.display_name = profile.name
    user.avatar_url = profile.avatar_url
    user.updated_at = utcnow()
    await db.flush()
    logger.debug("user_updated", user_id=user.id, github_id=profile.id)
    return user
