from __future__ import annotations

from thingstore.db import models
from thingstore.schemas.common import Page, PageMetadata
from thingstore.schemas.things import Profile
from .base import EntityRepository, Scope, is_valid_id, reading
from .errors import NotFoundError, Operation, storage_errors


class ProfileRepository(EntityRepository[Profile]):
    """Repository for profiles. Config and metadata are replaced wholesale on update."""

    model = models.Profile
    record_type = Profile
    entity = "profile"

    columns = ("id", "group_id", "name", "config", "metadata")
    updatable = ("name", "config", "metadata")
    skip_empty = ("name",)

    async def retrieve_by_group(self, group_id: str, page: PageMetadata) -> Page[Profile]:
        return await self.retrieve_by_filter(page, Scope.groups([group_id]))

    async def retrieve_by_thing(self, thing_id: str) -> Profile:
        """Return the profile the thing is bound to."""
        if not is_valid_id(thing_id):
            raise NotFoundError("profile not found")
        things = models.Thing.__table__
        stmt = (
            self.select_columns()
            .select_from(self.table.join(things, things.c.profile_id == self.column("id")))
            .where(things.c.id == thing_id)
        )
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                row = await self.first(stmt)
        if row is None:
            raise NotFoundError("profile not found")
        return self.to_record(row)
