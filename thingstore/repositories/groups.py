from __future__ import annotations

from typing import Iterable

from thingstore.db import models
from thingstore.schemas.common import Page, PageMetadata
from thingstore.schemas.groups import Group
from .base import EntityRepository, Scope


class GroupRepository(EntityRepository[Group]):
    """Repository for groups; the owner scope is the organization."""

    model = models.Group
    record_type = Group
    entity = "group"

    columns = ("id", "org_id", "name", "description", "metadata", "created_at", "updated_at")
    insert_columns = ("id", "org_id", "name", "description", "metadata")
    updatable = ("name", "description", "metadata")
    skip_empty = ("name", "description")
    touch_column = "updated_at"

    group_column = "id"
    owner_column = "org_id"
    id_columns = ("id", "org_id")

    async def retrieve_by_ids(self, ids: Iterable[str], page: PageMetadata) -> Page[Group]:
        """Page through the groups with the given ids."""
        return await self.retrieve_by_filter(page, Scope.groups(ids))

    async def retrieve_by_org(self, org_id: str, page: PageMetadata) -> Page[Group]:
        return await self.retrieve_by_filter(page, Scope.owner(org_id))
