"""
SQLModel-based User models.

UserBase (profile fields mirrored from GitHub)
    ├─> Users (database table, adds identifiers and timestamps)
    └─> UserResponse (API schema, defined in breadthwise_auth/schemas)

Users are created or updated when a GitHub login completes and are never
deleted by the auth subsystem.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, Index
from sqlmodel import Field, SQLModel

from breadthwise_auth.core.database import UTCDateTime, utcnow


def _new_user_id() -> str:
    return uuid4().hex


class UserBase(SQLModel):
    """
    Profile fields shared by the table and API schemas.

    All of these are refreshed from the GitHub profile on every login.
    """

    username: str = Field(max_length=255)
    email: str | None = Field(default=None, max_length=255)
    display_name: str | None = Field(default=None, max_length=255)
    avatar_url: str | None = Field(default=None, max_length=2048)


class Users(UserBase, table=True):
    """
    Database table for users.

    github_id is the immutable external identity and the upsert key.
    """

    __tablename__ = "users"

    __table_args__ = (
        Index("idx_users_github_id", "github_id", unique=True),
        Index("idx_users_username", "username", unique=True),
        Index("idx_users_email", "email", unique=True),
    )

    id: str = Field(default_factory=_new_user_id, primary_key=True, max_length=32)
    github_id: str = Field(max_length=255)

    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False)
    )
