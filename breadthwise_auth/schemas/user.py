"""
Pydantic schemas for User responses
"""

from breadthwise_auth.schemas.common import CamelModel, UTCDatetime


class UserResponse(CamelModel):
    """Schema for user response - what API returns"""

    id: str
    github_id: str
    username: str
    display_name: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    created_at: UTCDatetime
    updated_at: UTCDatetime
