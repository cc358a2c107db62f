"""Pydantic schemas for API responses."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class IdentifierListOut(BaseModel):
    """Distinct storage identifiers, ascending."""

    identifiers: List[str] = Field(default_factory=list)
    notice: Optional[str] = None


class DeleteAllOut(BaseModel):
    identifier: str
    count: int
