"""SQLAlchemy ORM models for stored form entries and their uploaded files."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Key that marks a property value as a reference to a PersistentResource.
RESOURCE_MARKER = "__resource__"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Shared declarative base for all models."""


@dataclass(frozen=True)
class ResourceReference:
    """A form property value that points at an uploaded file."""

    sha1: str

    def to_json(self) -> dict[str, str]:
        return {RESOURCE_MARKER: self.sha1}


def decode_property_value(value: Any) -> Any:
    """Turn a stored JSON value back into its domain value."""
    if isinstance(value, dict) and set(value) == {RESOURCE_MARKER}:
        return ResourceReference(sha1=str(value[RESOURCE_MARKER]))
    return value


def encode_property_value(value: Any) -> Any:
    if isinstance(value, ResourceReference):
        return value.to_json()
    return value


class StorageEntry(Base):
    """One submitted form entry, grouped by its storage identifier."""

    __tablename__ = "storage_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    storage_identifier: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
    properties: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def get_properties(self) -> dict[str, Any]:
        """Return the field mapping in submission order, with uploads decoded."""
        return {name: decode_property_value(value) for name, value in (self.properties or {}).items()}

    def set_properties(self, values: dict[str, Any]) -> None:
        self.properties = {name: encode_property_value(value) for name, value in values.items()}

    def __repr__(self) -> str:
        return (
            f"<StorageEntry id={self.id} identifier={self.storage_identifier!r} "
            f"submitted_at={self.submitted_at}>"
        )


class PersistentResource(Base):
    """An uploaded file kept in persistent storage, addressed by content hash."""

    __tablename__ = "persistent_resources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sha1: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    media_type: Mapped[str] = mapped_column(
        String(100), nullable=False, default="application/octet-stream"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def __repr__(self) -> str:
        return f"<PersistentResource sha1={self.sha1!r} filename={self.filename!r}>"
