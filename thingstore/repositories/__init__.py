"""
Repository layer for data access.

Repositories wrap an injected AsyncSession, build their queries with
SQLAlchemy Core over the model tables and raise only the exceptions defined
in ``thingstore.repositories.errors``.
"""

from .base import BaseRepository, EntityRepository, Scope, atomic, reading  # noqa: F401
from .connections import ConnectionRepository  # noqa: F401
from .errors import (  # noqa: F401
    ConflictError,
    CreateEntityError,
    EntityInUseError,
    MalformedEntityError,
    NotFoundError,
    RemoveEntityError,
    RepositoryError,
    RetrieveEntityError,
    UpdateEntityError,
)
from .groups import GroupRepository  # noqa: F401
from .memberships import (  # noqa: F401
    GroupMemberRepository,
    GroupMembershipRepository,
    GroupPolicyRepository,
    GroupRoleRepository,
)
from .profiles import ProfileRepository  # noqa: F401
from .things import ThingRepository  # noqa: F401
