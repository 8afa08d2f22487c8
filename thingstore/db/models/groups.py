from __future__ import annotations

from typing import Optional
from sqlalchemy import String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from thingstore.db.base import Base, MetadataMixin, TimestampMixin, UUIDPkMixin


class Group(UUIDPkMixin, MetadataMixin, TimestampMixin, Base):
    """Tenant-scoped container owning profiles, things and memberships."""
    __tablename__ = "groups"
    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_groups_org_name"),
    )

    org_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(254), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
