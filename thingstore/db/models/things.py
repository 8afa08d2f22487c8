from __future__ import annotations

from typing import Any, Optional
from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from thingstore.db.base import Base, GroupScopedMixin, MetadataMixin, UUIDPkMixin


class Profile(UUIDPkMixin, GroupScopedMixin, MetadataMixin, Base):
    """Configuration template referenced by things; also the routing target of connections."""
    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint("group_id", "name", name="uq_profiles_group_name"),
    )

    name: Mapped[str] = mapped_column(String(1024), nullable=False)
    config: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB(none_as_null=True), nullable=True)


class Thing(UUIDPkMixin, GroupScopedMixin, MetadataMixin, Base):
    """Managed device instance."""
    __tablename__ = "things"
    __table_args__ = (
        UniqueConstraint("group_id", "name", name="uq_things_group_name"),
    )

    profile_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(1024), nullable=False)
    key: Mapped[str] = mapped_column(String(4096), nullable=False, unique=True)
    external_key: Mapped[Optional[str]] = mapped_column(String(4096), nullable=True, unique=True)


class Connection(Base):
    """Many-to-many link between a channel (profile) and a thing."""
    __tablename__ = "connections"

    channel_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    thing_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("things.id", ondelete="CASCADE"),
        primary_key=True,
    )
