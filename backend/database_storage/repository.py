"""Query and removal of stored form entries."""

from __future__ import annotations

from typing import Iterable, Optional

import structlog
from sqlalchemy.orm import Query, Session

from database_storage.models import StorageEntry

logger = structlog.get_logger(__name__)


def distinct_identifiers(identifiers: Iterable[str]) -> list[str]:
    """Collapse runs of equal identifiers, keeping first-seen order.

    Input must already be sorted so that equal identifiers are adjacent;
    the default entry ordering guarantees that.
    """
    result: list[str] = []
    current: Optional[str] = None
    for identifier in identifiers:
        if not result or identifier != current:
            result.append(identifier)
            current = identifier
    return result


class StorageEntryRepository:
    """Entries ordered by storage identifier ascending, newest submission first."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._identifiers: Optional[list[str]] = None

    def _ordered(self) -> Query[StorageEntry]:
        return self._session.query(StorageEntry).order_by(
            StorageEntry.storage_identifier.asc(),
            StorageEntry.submitted_at.desc(),
            StorageEntry.id.desc(),
        )

    def find_all(self) -> list[StorageEntry]:
        return self._ordered().all()

    def find_by_storage_identifier(self, identifier: str) -> list[StorageEntry]:
        return self._ordered().filter(StorageEntry.storage_identifier == identifier).all()

    def find_storage_identifiers(self) -> list[str]:
        """Distinct identifiers in ascending order.

        The scan runs once per repository; add() and remove() drop the cached result.
        """
        if self._identifiers is None:
            self._identifiers = distinct_identifiers(
                entry.storage_identifier for entry in self.find_all()
            )
        return list(self._identifiers)

    def invalidate_identifiers(self) -> None:
        self._identifiers = None

    def add(self, entry: StorageEntry) -> None:
        self._session.add(entry)
        self.invalidate_identifiers()

    def remove(self, entry: StorageEntry) -> None:
        self._session.delete(entry)
        self.invalidate_identifiers()

    def remove_by_storage_identifier(self, identifier: str) -> int:
        """Delete every entry stored under ``identifier`` one by one.

        Returns the number of removed entries. A failure part way through
        propagates; entries removed before it stay removed in the session.
        """
        count = 0
        for entry in self.find_by_storage_identifier(identifier):
            self.remove(entry)
            count += 1
        self._session.flush()
        logger.info("entries_deleted", identifier=identifier, count=count)
        return count
