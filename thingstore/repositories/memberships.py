from __future__ import annotations

from typing import Generic, List, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import delete, insert, select, update

from thingstore.db import models
from thingstore.db.base import Base
from thingstore.schemas.common import Page, PageMetadata
from thingstore.schemas.memberships import GroupMembership, GroupPolicy, GroupRole
from .base import BaseRepository, atomic, is_valid_id, reading, require_ids
from .errors import NotFoundError, Operation, storage_errors
from .filters import build_page_query

MemberT = TypeVar("MemberT", bound=BaseModel)


class GroupMemberRepository(BaseRepository, Generic[MemberT]):
    """
    Repository for a per-group association table keyed by (group_id, member_id).

    ``value_column`` names the single payload column (a role or a policy).
    Saving a member that already has a row in the group raises ConflictError.
    """

    model: Type[Base]
    record_type: Type[MemberT]
    value_column: str = "role"
    entity: str = "group member"

    @property
    def table(self):
        return self.model.__table__

    def _columns(self):
        c = self.table.c
        return (c.group_id, c.member_id, c[self.value_column])

    def _to_record(self, row) -> MemberT:
        return self.record_type.model_validate(dict(row))

    def _key(self, group_id: str, member_id: str):
        c = self.table.c
        return (c.group_id == group_id, c.member_id == member_id)

    # PUBLIC_INTERFACE
    async def save(self, *records: MemberT) -> None:
        """Insert every record in one transaction."""
        if not records:
            return
        with storage_errors(Operation.CREATE, self.entity):
            async with atomic(self.session):
                for record in records:
                    require_ids(self.entity, group_id=record.group_id, member_id=record.member_id)
                    await self.execute(insert(self.table).values(record.model_dump()))

    # PUBLIC_INTERFACE
    async def update(self, *records: MemberT) -> None:
        """Overwrite the value of every record in one transaction; NotFoundError if any is missing."""
        if not records:
            return
        with storage_errors(Operation.UPDATE, self.entity):
            async with atomic(self.session):
                for record in records:
                    require_ids(self.entity, group_id=record.group_id, member_id=record.member_id)
                    stmt = (
                        update(self.table)
                        .where(*self._key(record.group_id, record.member_id))
                        .values({self.value_column: getattr(record, self.value_column)})
                    )
                    result = await self.execute(stmt)
                    if result.rowcount == 0:
                        raise NotFoundError(f"{self.entity} not found")

    # PUBLIC_INTERFACE
    async def remove(self, group_id: str, *member_ids: str) -> None:
        """Delete the members from the group in one transaction; NotFoundError if any is missing."""
        if not member_ids:
            return
        if not is_valid_id(group_id) or not all(is_valid_id(m) for m in member_ids):
            raise NotFoundError(f"{self.entity} not found")
        with storage_errors(Operation.REMOVE, self.entity):
            async with atomic(self.session):
                for member_id in member_ids:
                    result = await self.execute(delete(self.table).where(*self._key(group_id, member_id)))
                    if result.rowcount == 0:
                        raise NotFoundError(f"{self.entity} not found")

    # PUBLIC_INTERFACE
    async def retrieve_by_group(self, group_id: str, page: PageMetadata) -> Page[MemberT]:
        """Page through the members of a group, ordered by member id unless asked otherwise."""
        if not is_valid_id(group_id):
            raise NotFoundError("group not found")
        c = self.table.c
        query = build_page_query(
            page,
            allowed_orders={"id": c.member_id, self.value_column: c[self.value_column]},
            extra=[c.group_id == group_id],
        )
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                rows = await self.all(query.window(select(*self._columns())))
                total = await self.scalar_one(query.count(self.table))
        return Page(
            items=[self._to_record(row) for row in rows],
            total=total,
            offset=query.offset,
            limit=query.limit,
        )

    async def retrieve_role(self, group_id: str, member_id: str) -> str:
        """Return the member's value (role or policy) in the group."""
        if not is_valid_id(group_id) or not is_valid_id(member_id):
            raise NotFoundError(f"{self.entity} not found")
        stmt = select(self.table.c[self.value_column]).where(*self._key(group_id, member_id))
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                result = await self.execute(stmt)
                value = result.scalar_one_or_none()
        if value is None:
            raise NotFoundError(f"{self.entity} not found")
        return value

    async def retrieve_group_ids_by_member(self, member_id: str) -> List[str]:
        if not is_valid_id(member_id):
            return []
        c = self.table.c
        stmt = select(c.group_id).where(c.member_id == member_id).order_by(c.group_id)
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                ids = await self.scalars(stmt)
        return [str(i) for i in ids]

    async def retrieve_all(self) -> List[MemberT]:
        c = self.table.c
        stmt = select(*self._columns()).order_by(c.group_id, c.member_id)
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                rows = await self.all(stmt)
        return [self._to_record(row) for row in rows]

    async def retrieve_all_by_group(self, group_id: str) -> List[MemberT]:
        if not is_valid_id(group_id):
            raise NotFoundError("group not found")
        c = self.table.c
        stmt = select(*self._columns()).where(c.group_id == group_id).order_by(c.member_id)
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                rows = await self.all(stmt)
        return [self._to_record(row) for row in rows]


class GroupMembershipRepository(GroupMemberRepository[GroupMembership]):
    model = models.GroupMembership
    record_type = GroupMembership
    entity = "group membership"


class GroupRoleRepository(GroupMemberRepository[GroupRole]):
    model = models.GroupRole
    record_type = GroupRole
    entity = "group role"


class GroupPolicyRepository(GroupMemberRepository[GroupPolicy]):
    model = models.GroupPolicy
    record_type = GroupPolicy
    value_column = "policy"
    entity = "group policy"
