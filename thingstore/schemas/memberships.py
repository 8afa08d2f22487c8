from __future__ import annotations

from pydantic import BaseModel, Field


class GroupMembership(BaseModel):
    """Member's role inside a group."""
    group_id: str = Field(..., description="Group ID")
    member_id: str = Field(..., description="Member (user) ID")
    role: str = Field(..., description="Role name, e.g. admin, editor, viewer")

    class Config:
        from_attributes = True


class GroupRole(GroupMembership):
    """Role grant stored in group_roles."""


class GroupPolicy(BaseModel):
    """Policy grant stored in group_policies."""
    group_id: str = Field(..., description="Group ID")
    member_id: str = Field(..., description="Member (user) ID")
    policy: str = Field(..., description="Policy code, e.g. r or r_w")

    class Config:
        from_attributes = True
