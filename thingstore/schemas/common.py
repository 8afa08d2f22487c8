from __future__ import annotations

from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PageMetadata(BaseModel):
    """
    Page request: filtering, ordering and window parameters for list queries.

    A limit of 0 means "no row cap", not "zero rows".
    """
    offset: int = Field(0, ge=0, description="Number of records to skip")
    limit: int = Field(0, ge=0, description="Max number of records to return (0 = all)")
    name: Optional[str] = Field(default=None, description="Case-insensitive name substring")
    metadata: Optional[dict[str, Any]] = Field(
        default=None, description="Document the stored metadata must contain"
    )
    order: Optional[str] = Field(default=None, description="Sort field (id or name)")
    dir: Optional[str] = Field(default=None, description="Sort direction (asc or desc)")


class Page(BaseModel, Generic[T]):
    """Page result: the returned window plus the total number of matching records."""
    items: List[T] = Field(default_factory=list)
    total: int = Field(0, ge=0, description="Number of records matching the filter")
    offset: int = Field(0, ge=0)
    limit: int = Field(0, ge=0)
