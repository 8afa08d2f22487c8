from __future__ import annotations

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from thingstore.db.base import Base


class _GroupMemberMixin:
    """Composite (group_id, member_id) key shared by the per-group association tables."""
    group_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("groups.id", ondelete="CASCADE"),
        primary_key=True,
    )
    member_id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, index=True)


class GroupMembership(_GroupMemberMixin, Base):
    """Member's role inside a group."""
    __tablename__ = "group_memberships"

    role: Mapped[str] = mapped_column(String(15), nullable=False)


class GroupRole(_GroupMemberMixin, Base):
    """Legacy role grant for a group member."""
    __tablename__ = "group_roles"

    role: Mapped[str] = mapped_column(String(15), nullable=False)


class GroupPolicy(_GroupMemberMixin, Base):
    """Access policy granted to a group member."""
    __tablename__ = "group_policies"

    policy: Mapped[str] = mapped_column(String(15), nullable=False)
