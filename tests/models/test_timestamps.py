"""Tests for UTC timestamp columns on the models."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from breadthwise_auth.core.database import UTCDateTime, utcnow
from breadthwise_auth.models.refresh_token import RefreshTokens
from breadthwise_auth.models.user import Users


@pytest.mark.unit
class TestColumnTypes:
    @pytest.mark.parametrize(
        ("model", "column"),
        [
            (Users, "created_at"),
            (Users, "updated_at"),
            (RefreshTokens, "created_at"),
            (RefreshTokens, "expires_at"),
            (RefreshTokens, "revoked_at"),
        ],
    )
    def test_datetime_columns_use_utc_type(self, model, column) -> None:
        assert isinstance(model.__table__.c[column].type, UTCDateTime)

    def test_utcnow_is_aware(self) -> None:
        assert utcnow().tzinfo is UTC


@pytest.mark.unit
class TestRoundTrip:
    async def test_insert_and_read_back(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        expires = datetime(2030, 1, 2, 3, 4, 5, tzinfo=UTC)
        async with session_factory() as session:
            user = Users(github_id="55", username="roundtrip")
            session.add(user)
            await session.flush()
            session.add(RefreshTokens(user_id=user.id, token_hash="a" * 64, expires_at=expires))
            await session.commit()
            created = user.created_at

        async with session_factory() as session:
            stored_user = (
                await session.execute(select(Users).where(Users.github_id == "55"))
            ).scalar_one()
            token = (await session.execute(select(RefreshTokens))).scalar_one()

        assert stored_user.created_at == created
        assert stored_user.created_at.tzinfo is UTC
        assert token.expires_at == expires
        assert token.expires_at.tzinfo is UTC
        assert token.revoked_at is None

    async def test_other_offsets_stored_as_same_instant(
        self, session_factory: async_sessionmaker[AsyncSession], test_user: Users
    ) -> None:
        tokyo = timezone(timedelta(hours=9))
        expires = datetime(2030, 6, 1, 18, 0, tzinfo=tokyo)
        async with session_factory() as session:
            session.add(
                RefreshTokens(user_id=test_user.id, token_hash="b" * 64, expires_at=expires)
            )
            await session.commit()

        async with session_factory() as session:
            token = (await session.execute(select(RefreshTokens))).scalar_one()

        assert token.expires_at == datetime(2030, 6, 1, 9, 0, tzinfo=UTC)

    async def test_naive_value_taken_as_utc(
        self, session_factory: async_sessionmaker[AsyncSession], test_user: Users
    ) -> None:
        async with session_factory() as session:
            session.add(
                RefreshTokens(
                    user_id=test_user.id,
                    token_hash="c" * 64,
                    expires_at=datetime(2030, 6, 1, 9, 0),
                )
            )
            await session.commit()

        async with session_factory() as session:
            token = (await session.execute(select(RefreshTokens))).scalar_one()

        assert token.expires_at == datetime(2030, 6, 1, 9, 0, tzinfo=UTC)
