"""Resolve uploaded-file references to their public URIs."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

import structlog
from sqlalchemy.orm import Session

from database_storage.models import PersistentResource, ResourceReference

logger = structlog.get_logger(__name__)


class ResourceResolver:
    """Map a ResourceReference to ``<base_url>/<sha1>/<filename>``.

    A reference is unresolvable when no base URL is configured or when no
    persistent resource with its hash exists.
    """

    def __init__(self, session: Session, base_url: str) -> None:
        self._session = session
        self._enabled = bool(base_url)
        self._base_url = base_url.rstrip("/")

    def public_persistent_uri(self, reference: ResourceReference) -> Optional[str]:
        if not self._enabled:
            return None

        resource = (
            self._session.query(PersistentResource)
            .filter(PersistentResource.sha1 == reference.sha1)
            .first()
        )
        if resource is None:
            logger.debug("resource_unresolved", sha1=reference.sha1)
            return None

        return f"{self._base_url}/{resource.sha1}/{quote(resource.filename)}"
