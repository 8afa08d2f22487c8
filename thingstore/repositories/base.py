from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Generic, Iterable, List, Optional, Tuple, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import Executable, Select, Table, delete, func, insert, select, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import FromClause

from thingstore.db.base import Base
from thingstore.schemas.common import Page, PageMetadata
from .errors import MalformedEntityError, NotFoundError, Operation, storage_errors
from .filters import PageQuery, build_page_query, ids_predicate

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


# PUBLIC_INTERFACE
def is_valid_id(value: Any) -> bool:
    """Return True when ``value`` parses as a UUID."""
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


# PUBLIC_INTERFACE
def require_ids(entity: str, **ids: Any) -> None:
    """Raise MalformedEntityError naming the first value that is not a UUID."""
    for name, value in ids.items():
        if not is_valid_id(value):
            raise MalformedEntityError(f"malformed {entity}: invalid {name}")


# PUBLIC_INTERFACE
@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run the enclosed statements as one transaction.

    Commits when the block completes; otherwise rolls back before the error
    (including task cancellation) propagates.

    Usage:
        async with atomic(session):
            for row in rows:
                await session.execute(insert(table).values(row))
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        logger.debug("Rolling back transaction")
        await session.rollback()
        raise


# PUBLIC_INTERFACE
@asynccontextmanager
async def reading(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run the enclosed queries; roll back the implicit transaction if one fails.

    PostgreSQL aborts the transaction on a failed statement; the rollback
    leaves the session usable for the next call.
    """
    try:
        yield session
    except BaseException:
        logger.debug("Rolling back after failed read")
        await session.rollback()
        raise


@dataclass(frozen=True)
class Scope:
    """
    Visibility restriction applied to list queries and updates.

    ``group_ids`` limits rows to a set of groups, ``owner_id`` to a single
    owner. Neither set means every row is visible.
    """

    group_ids: Optional[Tuple[str, ...]] = None
    owner_id: Optional[str] = None

    @classmethod
    def all(cls) -> "Scope":
        return cls()

    @classmethod
    def groups(cls, ids: Iterable[str]) -> "Scope":
        # Malformed identifiers can never match a row.
        return cls(group_ids=tuple(i for i in ids if is_valid_id(i)))

    @classmethod
    def owner(cls, owner_id: str) -> "Scope":
        return cls(owner_id=owner_id)

    @property
    def is_empty(self) -> bool:
        """True when the scope cannot match any row."""
        if self.group_ids is not None and not self.group_ids:
            return True
        return self.owner_id is not None and not is_valid_id(self.owner_id)


class BaseRepository:
    """Base class for repositories providing common helpers around an injected AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None) -> List[Any]:
        """Execute and return all scalars."""
        result = await self.execute(statement, params)
        return list(result.scalars().all())

    async def scalar_one(self, statement: Executable, params: Optional[dict[str, Any]] = None) -> Any:
        """Execute and return exactly one scalar."""
        result = await self.execute(statement, params)
        return result.scalar_one()

    async def first(self, statement: Executable, params: Optional[dict[str, Any]] = None) -> Optional[RowMapping]:
        """Execute and return the first row as a mapping, or None."""
        result = await self.execute(statement, params)
        return result.mappings().first()

    async def all(self, statement: Executable, params: Optional[dict[str, Any]] = None) -> List[RowMapping]:
        """Execute and return every row as a mapping."""
        result = await self.execute(statement, params)
        return list(result.mappings().all())


class EntityRepository(BaseRepository, Generic[RecordT]):
    """
    Generic save/update/retrieve/remove over one identifier-keyed table.

    Subclasses describe the table and its policies through class attributes:

    - ``model``/``record_type``: the ORM model whose table is queried and the
      pydantic record rows are converted into.
    - ``columns``: columns selected and returned; ``insert_columns`` the subset
      written on save (defaults to ``columns``).
    - ``orders``: sortable columns; ``id`` must be among them.
    - ``updatable``: columns an update may write; those in ``skip_empty`` are
      left untouched when the record carries None or an empty string.
    - ``group_column``/``owner_column``: columns behind ``Scope.groups`` and
      ``Scope.owner``.
    - ``touch_column``: set to ``now()`` on every update.
    - ``id_columns``: identifier columns checked before a write is sent.
    """

    model: Type[Base]
    record_type: Type[RecordT]
    entity: str = "entity"

    columns: Tuple[str, ...] = ()
    insert_columns: Optional[Tuple[str, ...]] = None
    orders: Tuple[str, ...] = ("id", "name")
    name_column: Optional[str] = "name"
    metadata_column: Optional[str] = "metadata"

    updatable: Tuple[str, ...] = ()
    skip_empty: Tuple[str, ...] = ()
    touch_column: Optional[str] = None

    group_column: Optional[str] = "group_id"
    owner_column: Optional[str] = None
    id_columns: Tuple[str, ...] = ("id", "group_id")

    @property
    def table(self) -> Table:
        return self.model.__table__

    def column(self, name: str):
        return self.table.c[name]

    def select_columns(self) -> Select:
        return select(*(self.column(name) for name in self.columns))

    def to_record(self, row: RowMapping) -> RecordT:
        return self.record_type.model_validate(dict(row))

    def to_row(self, record: RecordT) -> dict[str, Any]:
        names = self.insert_columns if self.insert_columns is not None else self.columns
        row = {name: getattr(record, name) for name in names}
        require_ids(self.entity, **{name: row[name] for name in self.id_columns if name in row})
        return row

    def scope_predicates(self, scope: Optional[Scope]) -> list:
        if scope is None:
            return []
        predicates = []
        if scope.group_ids is not None:
            if self.group_column is None:
                raise ValueError(f"{self.entity} cannot be scoped by group")
            predicates.append(ids_predicate(self.column(self.group_column), scope.group_ids))
        if scope.owner_id is not None:
            if self.owner_column is None:
                raise ValueError(f"{self.entity} cannot be scoped by owner")
            predicates.append(self.column(self.owner_column) == scope.owner_id)
        return predicates

    def page_query(self, page: PageMetadata, extra: Iterable = ()) -> PageQuery:
        return build_page_query(
            page,
            allowed_orders={name: self.column(name) for name in self.orders},
            name_column=self.column(self.name_column) if self.name_column else None,
            metadata_column=self.column(self.metadata_column) if self.metadata_column else None,
            extra=extra,
        )

    def empty_page(self, page: PageMetadata) -> Page[RecordT]:
        return Page(items=[], total=0, offset=page.offset, limit=page.limit)

    # PUBLIC_INTERFACE
    async def retrieve_page(
        self,
        page: PageMetadata,
        *,
        extra: Iterable = (),
        from_clause: Optional[FromClause] = None,
    ) -> Page[RecordT]:
        """
        Run the windowed select and the mirrored count for ``page``.

        ``from_clause`` replaces the entity table when the filter needs a join;
        ``extra`` predicates are ANDed with the name and metadata filters.
        """
        query = self.page_query(page, extra)
        source = from_clause if from_clause is not None else self.table
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                rows = await self.all(query.window(self.select_columns().select_from(source)))
                total = await self.scalar_one(query.count(source))
        return Page(
            items=[self.to_record(row) for row in rows],
            total=total,
            offset=query.offset,
            limit=query.limit,
        )

    # PUBLIC_INTERFACE
    async def save(self, *records: RecordT) -> List[RecordT]:
        """Insert every record in one transaction and return the stored rows."""
        saved: List[RecordT] = []
        if not records:
            return saved
        with storage_errors(Operation.CREATE, self.entity):
            async with atomic(self.session):
                for record in records:
                    stmt = (
                        insert(self.table)
                        .values(self.to_row(record))
                        .returning(*(self.column(name) for name in self.columns))
                    )
                    row = await self.first(stmt)
                    saved.append(self.to_record(row))
        return saved

    # PUBLIC_INTERFACE
    async def update(self, record: RecordT, scope: Optional[Scope] = None) -> RecordT:
        """
        Write the updatable fields of ``record`` to the row with the same id.

        Raises:
            NotFoundError: when no row with that id exists within ``scope``.
            MalformedEntityError: when the id or a written identifier is not a UUID.
        """
        values = {}
        for name in self.updatable:
            value = getattr(record, name)
            if name in self.skip_empty and value in (None, ""):
                continue
            values[name] = value
        return await self.update_values(record.id, values, scope)

    async def update_values(
        self, id: str, values: dict[str, Any], scope: Optional[Scope] = None
    ) -> RecordT:
        require_ids(self.entity, id=id, **{k: v for k, v in values.items() if k in self.id_columns})
        if not values:
            return await self.retrieve_by_id(id)
        if scope is not None and scope.is_empty:
            raise NotFoundError(f"{self.entity} not found")
        if self.touch_column:
            values = {**values, self.touch_column: func.now()}
        stmt = (
            update(self.table)
            .where(self.column("id") == id, *self.scope_predicates(scope))
            .values(values)
            .returning(*(self.column(name) for name in self.columns))
        )
        with storage_errors(Operation.UPDATE, self.entity):
            async with atomic(self.session):
                row = await self.first(stmt)
                if row is None:
                    raise NotFoundError(f"{self.entity} not found")
        return self.to_record(row)

    # PUBLIC_INTERFACE
    async def retrieve_by_id(self, id: str) -> RecordT:
        """Return the record with ``id``; NotFoundError for unknown or malformed ids."""
        if not is_valid_id(id):
            raise NotFoundError(f"{self.entity} not found")
        stmt = self.select_columns().where(self.column("id") == id)
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                row = await self.first(stmt)
        if row is None:
            raise NotFoundError(f"{self.entity} not found")
        return self.to_record(row)

    # PUBLIC_INTERFACE
    async def retrieve_by_filter(self, page: PageMetadata, scope: Optional[Scope] = None) -> Page[RecordT]:
        """Return the page of records matching ``page`` inside ``scope`` plus the total match count."""
        if scope is not None and scope.is_empty:
            return self.empty_page(page)
        return await self.retrieve_page(page, extra=self.scope_predicates(scope))

    # PUBLIC_INTERFACE
    async def retrieve_all(self) -> List[RecordT]:
        """Return every record ordered by id."""
        stmt = self.select_columns().order_by(self.column("id"))
        with storage_errors(Operation.RETRIEVE, self.entity):
            async with reading(self.session):
                rows = await self.all(stmt)
        return [self.to_record(row) for row in rows]

    # PUBLIC_INTERFACE
    async def remove(self, *ids: str) -> None:
        """
        Delete the records with the given ids in one transaction.

        Unknown and malformed ids are ignored. A row still referenced through a
        restricting foreign key raises EntityInUseError and nothing is removed.
        """
        valid = [id for id in ids if is_valid_id(id)]
        if not valid:
            return
        with storage_errors(Operation.REMOVE, self.entity):
            async with atomic(self.session):
                for id in valid:
                    await self.execute(delete(self.table).where(self.column("id") == id))
