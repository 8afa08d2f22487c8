from __future__ import annotations

from typing import Optional

from sqlalchemy import select, update

from thingstore.db import models
from thingstore.schemas.common import Page, PageMetadata
from thingstore.schemas.things import KeyType, Thing
from .base import EntityRepository, Scope, atomic, is_valid_id, reading, require_ids
from .errors import NotFoundError, Operation, storage_errors


class ThingRepository(EntityRepository[Thing]):
    """
    Repository for things.

    ``update`` writes the name and metadata only. Keys, group and profile
    have their own update methods so that each can be changed on its own.
    """

    model = models.Thing
    record_type = Thing
    entity = "thing"

    columns = ("id", "group_id", "profile_id", "name", "key", "external_key", "metadata")
    updatable = ("name", "metadata")
    skip_empty = ("name",)
    id_columns = ("id", "group_id", "profile_id")

    async def retrieve_by_group(self, group_id: str, page: PageMetadata) -> Page[Thing]:
        return await self.retrieve_by_filter(page, Scope.groups([group_id]))

    async def retrieve_by_profile(self, profile_id: str, page: PageMetadata) -> Page[Thing]:
        """Page through the things bound to ``profile_id``."""
        if not is_valid_id(profile_id):
            raise NotFoundError("profile not found")
        return await self.retrieve_page(page, extra=[self.column("profile_id") == profile_id])

    async def retrieve_by_key(self, key: str, key_type: KeyType = KeyType.INTERNAL) -> str:
        """Return the id of the thing holding ``key``."""
        column = "external_key" if key_type == KeyType.EXTERNAL else "key"
        stmt = select(self.column("id")).where(self.column(column) == key)
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                result = await self.execute(stmt)
                thing_id = result.scalar_one_or_none()
        if thing_id is None:
            raise NotFoundError("thing not found")
        return str(thing_id)

    async def update_key(self, thing_id: str, key: str) -> None:
        """Rotate the thing's key; ConflictError when another thing holds it."""
        await self._set_column(thing_id, "key", key)

    async def update_external_key(self, thing_id: str, external_key: str) -> None:
        await self._set_column(thing_id, "external_key", external_key)

    async def remove_external_key(self, thing_id: str) -> None:
        await self._set_column(thing_id, "external_key", None)

    async def update_group_and_profile(self, thing: Thing) -> Thing:
        """Move the thing to ``thing.group_id`` and rebind it to ``thing.profile_id``."""
        values = {}
        if thing.group_id:
            values["group_id"] = thing.group_id
        if thing.profile_id:
            values["profile_id"] = thing.profile_id
        return await self.update_values(thing.id, values)

    async def _set_column(self, thing_id: str, name: str, value: Optional[str]) -> None:
        require_ids(self.entity, id=thing_id)
        stmt = (
            update(self.table)
            .where(self.column("id") == thing_id)
            .values({name: value})
            .returning(self.column("id"))
        )
        with storage_errors(Operation.UPDATE, self.entity):
            async with atomic(self.session):
                row = await self.first(stmt)
                if row is None:
                    raise NotFoundError("thing not found")
