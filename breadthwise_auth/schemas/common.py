"""
Shared/common Pydantic schemas used across multiple endpoints
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# Custom datetime type that serializes with Z suffix for UTC
# Usage: expires_at: UTCDatetime instead of datetime
UTCDatetime = Annotated[
    datetime,
    PlainSerializer(
        lambda dt: dt.strftime("%Y-%m-%dT%H:%M:%SZ"),
        return_type=str,
    ),
]


class CamelModel(BaseModel):
    """
    Base model exposing camelCase field names on the wire.

    Fields are declared in snake_case; populate_by_name lets code construct
    them either way.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
