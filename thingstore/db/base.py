from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import MetaData, DateTime, text, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Standardized naming convention for alembic-friendly constraints/indexes.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base class with metadata naming conventions."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UUIDPkMixin:
    """Mixin that provides a UUID primary key supplied by the caller."""
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True)


class TimestampMixin:
    """Mixin that provides created_at and updated_at timestamp columns."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


class GroupScopedMixin:
    """Mixin that provides group scoping and FK to groups.id (cascading)."""
    group_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class MetadataMixin:
    """Mixin that provides the JSONB metadata document column."""
    # `metadata` is reserved on declarative classes, hence the attribute name.
    metadata_: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata", JSONB(none_as_null=True), nullable=True
    )
