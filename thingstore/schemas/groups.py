from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class Group(BaseModel):
    """Group record."""
    id: str = Field(default_factory=lambda: str(uuid4()), description="Group ID")
    org_id: str = Field(..., description="Owning organization ID")
    name: str = Field(..., description="Name (unique within organization)")
    description: Optional[str] = Field(None)
    metadata: Optional[dict[str, Any]] = Field(None)
    created_at: Optional[datetime] = Field(None, description="Assigned by storage")
    updated_at: Optional[datetime] = Field(None, description="Assigned by storage")

    class Config:
        from_attributes = True
