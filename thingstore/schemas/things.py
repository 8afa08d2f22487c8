from __future__ import annotations

from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class Profile(BaseModel):
    """Profile record."""
    id: str = Field(default_factory=lambda: str(uuid4()), description="Profile ID")
    group_id: str = Field(..., description="Owning group ID")
    name: str = Field(..., description="Name (unique within group)")
    config: Optional[dict[str, Any]] = Field(None)
    metadata: Optional[dict[str, Any]] = Field(None)

    class Config:
        from_attributes = True


class Thing(BaseModel):
    """Thing record."""
    id: str = Field(default_factory=lambda: str(uuid4()), description="Thing ID")
    group_id: str = Field(..., description="Owning group ID")
    profile_id: str = Field(..., description="Profile the thing is bound to")
    name: str = Field(..., description="Name (unique within group)")
    key: str = Field(..., description="Globally unique access key")
    external_key: Optional[str] = Field(None, description="Optional externally issued key")
    metadata: Optional[dict[str, Any]] = Field(None)

    class Config:
        from_attributes = True


class KeyType(str, Enum):
    """Which thing key column a lookup targets."""
    INTERNAL = "internal"
    EXTERNAL = "external"


class Connection(BaseModel):
    """Channel/thing pairing."""
    channel_id: str = Field(..., description="Channel (profile) ID")
    thing_id: str = Field(..., description="Thing ID")

    class Config:
        from_attributes = True
