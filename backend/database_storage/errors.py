"""Database storage exception hierarchy.

Domain code raises these; the HTTP layer translates them into responses.
"""

from __future__ import annotations


class DatabaseStorageError(Exception):
    """Base exception for all database storage failures."""


class UnsupportedFormatError(DatabaseStorageError):
    """Raised when an export is requested for a writer type that is not registered."""

    def __init__(self, writer_type: str) -> None:
        super().__init__(f"No writer available for type {writer_type}.")
        self.writer_type = writer_type


class NoDataError(DatabaseStorageError):
    """Raised when an export finds no entries for the storage identifier."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"No entries stored for identifier {identifier!r}.")
        self.identifier = identifier


class ExportLimitError(DatabaseStorageError):
    """Raised when the entries do not fit the sheet limits of the requested format."""

    def __init__(self, writer_type: str, reason: str) -> None:
        super().__init__(f"Cannot export as {writer_type}: {reason}.")
        self.writer_type = writer_type
        self.reason = reason
