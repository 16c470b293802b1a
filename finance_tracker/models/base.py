"""
Shared model plumbing.

Stored entities are pydantic models whose fields map one-to-one onto
document fields. The document id lives outside the field map, so
`id` is excluded when writing and re-attached when reading.
"""

from datetime import date, datetime, time, timezone
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def range_start(value: Union[date, datetime, None]) -> Optional[datetime]:
    """Lower bound of an inclusive range. A bare date starts at midnight."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def range_end(value: Union[date, datetime, None]) -> Optional[datetime]:
    """Upper bound of an inclusive range. A bare date covers the whole day."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


class StoredModel(BaseModel):
    """A model persisted as one document."""

    # Fields computed at read time and never written
    derived_fields: ClassVar[frozenset[str]] = frozenset()

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(exclude={"id", *self.derived_fields})

    @classmethod
    def from_document(cls, document_id: str, data: dict[str, Any]):
        return cls.model_validate({**data, "id": document_id})
