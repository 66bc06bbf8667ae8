"""
Database models.

For modifications:
1. Edit the appropriate model file in breadthwise_auth/models/
2. Create an Alembic migration to reflect the changes
"""

from breadthwise_auth.models.refresh_token import RefreshTokens
from breadthwise_auth.models.user import Users

__all__ = [
    "RefreshTokens",
    "Users",
]
