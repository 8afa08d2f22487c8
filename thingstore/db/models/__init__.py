"""
ORM models for groups, profiles, things, connections and group memberships.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .groups import Group  # noqa: F401
from .things import (  # noqa: F401
    Profile,
    Thing,
    Connection,
)
from .memberships import (  # noqa: F401
    GroupMembership,
    GroupRole,
    GroupPolicy,
)
