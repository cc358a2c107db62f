"""Flatten stored entries into a header row plus one row per entry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from database_storage.models import ResourceReference, StorageEntry

# Cell text for uploads that cannot be resolved and values with no text form.
PLACEHOLDER = "-"

_CONTAINER_TYPES = (list, tuple, set, frozenset, dict)


class UriResolver(Protocol):
    def public_persistent_uri(self, reference: ResourceReference) -> str | None: ...


@dataclass
class ExportTable:
    header: list[str]
    rows: list[list[str]] = field(default_factory=list)

    @property
    def columns(self) -> int:
        return len(self.header)

    def as_matrix(self) -> list[list[str]]:
        return [self.header, *self.rows]


def coerce_value(value: Any, resolver: UriResolver) -> str:
    """Render one property value as cell text.

    Uploads become their public URI, strings pass through, and anything
    else with a text form is converted with ``str``. ``None`` and
    containers become the placeholder so every value keeps its column.
    """
    if isinstance(value, ResourceReference):
        return resolver.public_persistent_uri(value) or PLACEHOLDER
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, _CONTAINER_TYPES):
        return PLACEHOLDER
    return str(value)


def build_table(entries: Sequence[StorageEntry], resolver: UriResolver) -> ExportTable:
    """Header comes from the first entry's field names; entries must share one field set."""
    if not entries:
        raise ValueError("Cannot build an export table without entries")

    table = ExportTable(header=list(entries[0].get_properties()))
    for entry in entries:
        table.rows.append(
            [coerce_value(value, resolver) for value in entry.get_properties().values()]
        )
    return table
