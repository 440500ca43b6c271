"""
Shared base models and response envelopes.
"""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def without_nulls(data: Any) -> Any:
    """Drop null fields so a stored `null` falls back to the field default."""
    if isinstance(data, dict):
        return {key: value for key, value in data.items() if value is not None}
    return data


class ApiModel(BaseModel):
    """Base model that reads and writes the camelCase keys used by the web pages."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_api(self) -> dict:
        """Dump with camelCase keys."""
        return self.model_dump(by_alias=True)


class FirestoreDocument(ApiModel):
    """Loose view over a Firestore document; unknown fields are kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def drop_null_fields(cls, data: Any) -> Any:
        return without_nulls(data)


class ErrorResponse(BaseModel):
    """Error body returned by every failing route."""

    error: str
    code: str
    details: Optional[Any] = None
