"""
Public Pydantic schemas passed in and out of the repositories.

Records are grouped by resource family (groups, things, memberships) and the
common module holds the page request/result models.
"""

from .common import Page, PageMetadata  # noqa: F401
from .groups import Group  # noqa: F401
from .memberships import GroupMembership, GroupPolicy, GroupRole  # noqa: F401
from .things import Connection, KeyType, Profile, Thing  # noqa: F401
