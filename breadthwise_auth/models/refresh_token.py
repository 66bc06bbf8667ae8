"""
SQLModel-based RefreshToken model.

Security features:
- Stores hashed tokens (never the raw value)
- Single-use: revoked_at is set the moment a token is redeemed
- Validity is computed from revoked_at and expires_at, so purging expired
  rows is only housekeeping
"""

from datetime import datetime

from sqlalchemy import Column, ForeignKeyConstraint, Index
from sqlmodel import Field, SQLModel

from breadthwise_auth.core.database import UTCDateTime, utcnow


class RefreshTokens(SQLModel, table=True):
    """
    Database table for refresh tokens.

    One row per issued token. Rows are only ever mutated to set revoked_at
    (rotation, logout, revoke-all).
    """

    __tablename__ = "refresh_tokens"

    __table_args__ = (
        ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            ondelete="CASCADE",
            onupdate="CASCADE",
            name="fk_refresh_tokens_user_id",
        ),
        Index("idx_refresh_tokens_user_id", "user_id"),
        Index("idx_refresh_tokens_token_hash", "token_hash", unique=True),
        Index("idx_refresh_tokens_expires_at", "expires_at"),
    )

    id: int | None = Field(default=None, primary_key=True)

    user_id: str = Field(max_length=32)

    # SHA-256 hex of the raw token
    token_hash: str = Field(max_length=64)

    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False)
    )
    expires_at: datetime = Field(sa_column=Column(UTCDateTime(), nullable=False))

    revoked_at: datetime | None = Field(
        default=None, sa_column=Column(UTCDateTime(), nullable=True)
    )

    # Security auditing only, never used to decide validity
    ip_address: str | None = Field(default=None, max_length=45)  # Supports IPv6
    user_agent: str | None = Field(default=None, max_length=255)
