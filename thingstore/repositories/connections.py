from __future__ import annotations

from typing import List

from sqlalchemy import delete, insert, select

from thingstore.db import models
from thingstore.schemas.common import Page, PageMetadata
from thingstore.schemas.things import Connection, Profile, Thing
from .base import BaseRepository, atomic, is_valid_id, reading, require_ids
from .errors import NotFoundError, Operation, storage_errors
from .profiles import ProfileRepository
from .things import ThingRepository


class ConnectionRepository(BaseRepository):
    """
    Repository for channel/thing connections.

    A channel is a profile acting as a routing target. Listing the channels of
    a thing or the things on a channel delegates paging to the profile and
    thing repositories over a join with the connections table.
    """

    entity = "connection"

    def __init__(self, session) -> None:
        super().__init__(session)
        self.profiles = ProfileRepository(session)
        self.things = ThingRepository(session)

    @property
    def table(self):
        return models.Connection.__table__

    async def connect(self, channel_id: str, *thing_ids: str) -> None:
        """
        Connect every thing to the channel in one transaction.

        Raises:
            ConflictError: when a pair is already connected.
            NotFoundError: when the channel or a thing does not exist.
        """
        if not thing_ids:
            return
        require_ids(self.entity, channel_id=channel_id)
        for thing_id in thing_ids:
            require_ids(self.entity, thing_id=thing_id)
        with storage_errors(Operation.CREATE, self.entity):
            async with atomic(self.session):
                for thing_id in thing_ids:
                    await self.execute(
                        insert(self.table).values(channel_id=channel_id, thing_id=thing_id)
                    )

    async def disconnect(self, channel_id: str, *thing_ids: str) -> None:
        """Remove every pair in one transaction; NotFoundError if any pair is not connected."""
        if not thing_ids:
            return
        if not is_valid_id(channel_id) or not all(is_valid_id(t) for t in thing_ids):
            raise NotFoundError("connection not found")
        c = self.table.c
        with storage_errors(Operation.REMOVE, self.entity):
            async with atomic(self.session):
                for thing_id in thing_ids:
                    result = await self.execute(
                        delete(self.table).where(c.channel_id == channel_id, c.thing_id == thing_id)
                    )
                    if result.rowcount == 0:
                        raise NotFoundError("connection not found")

    async def retrieve_by_thing(self, thing_id: str, page: PageMetadata) -> Page[Profile]:
        """Page through the channels the thing is connected to."""
        if not is_valid_id(thing_id):
            raise NotFoundError("thing not found")
        c = self.table.c
        source = self.profiles.table.join(self.table, c.channel_id == self.profiles.column("id"))
        return await self.profiles.retrieve_page(page, extra=[c.thing_id == thing_id], from_clause=source)

    async def retrieve_by_channel(self, channel_id: str, page: PageMetadata) -> Page[Thing]:
        """Page through the things connected to the channel."""
        if not is_valid_id(channel_id):
            raise NotFoundError("channel not found")
        c = self.table.c
        source = self.things.table.join(self.table, c.thing_id == self.things.column("id"))
        return await self.things.retrieve_page(page, extra=[c.channel_id == channel_id], from_clause=source)

    async def retrieve_by_thing_key(self, key: str) -> List[Connection]:
        """Return the connections of the thing holding ``key``."""
        things = self.things.table
        c = self.table.c
        stmt = (
            select(c.channel_id, c.thing_id)
            .select_from(self.table.join(things, things.c.id == c.thing_id))
            .where(things.c.key == key)
            .order_by(c.channel_id)
        )
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                rows = await self.all(stmt)
        return [Connection.model_validate(dict(row)) for row in rows]

    async def retrieve_all(self) -> List[Connection]:
        c = self.table.c
        stmt = select(c.channel_id, c.thing_id).order_by(c.channel_id, c.thing_id)
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                rows = await self.all(stmt)
        return [Connection.model_validate(dict(row)) for row in rows]
