"""
Predicate, ordering and window builders for paginated list queries.

Every caller-supplied value travels as a bound parameter inside a SQLAlchemy
expression. The only tokens that reach the SQL text are column names picked
from a per-entity whitelist and the ASC/DESC keywords.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import Select, and_, func, select
from sqlalchemy.sql.elements import ColumnElement, UnaryExpression
from sqlalchemy.sql.expression import FromClause

from thingstore.schemas.common import PageMetadata
from .errors import MalformedEntityError

DEFAULT_ORDER = "id"
ASC = "asc"
DESC = "desc"


# PUBLIC_INTERFACE
def name_predicate(column: ColumnElement, name: Optional[str]) -> Optional[ColumnElement[bool]]:
    """Case-insensitive substring match on ``column``; None for an empty name."""
    if not name:
        return None
    return column.icontains(name, autoescape=True)


# PUBLIC_INTERFACE
def metadata_predicate(
    column: ColumnElement, metadata: Optional[Mapping[str, Any]]
) -> Optional[ColumnElement[bool]]:
    """
    Containment match: the stored document must include every key/value of ``metadata``.

    Raises:
        MalformedEntityError: if ``metadata`` cannot be encoded as JSON.
    """
    if not metadata:
        return None
    try:
        json.dumps(metadata)
    except (TypeError, ValueError) as exc:
        raise MalformedEntityError("metadata filter is not valid JSON") from exc
    return column.contains(dict(metadata))


# PUBLIC_INTERFACE
def ids_predicate(column: ColumnElement, ids: Iterable[str]) -> ColumnElement[bool]:
    """Membership of ``column`` in the given identifier set."""
    return column.in_(list(ids))


# PUBLIC_INTERFACE
def order_column(order: Optional[str], allowed: Mapping[str, ColumnElement]) -> ColumnElement:
    """Resolve the sort field through the whitelist, falling back to the identifier."""
    key = (order or "").lower()
    if key in allowed:
        return allowed[key]
    return allowed[DEFAULT_ORDER]


# PUBLIC_INTERFACE
def direction(dir: Optional[str]) -> str:
    """Return ``asc`` only when explicitly requested; anything else sorts descending."""
    if (dir or "").lower() == ASC:
        return ASC
    return DESC


# PUBLIC_INTERFACE
def order_clause(page: PageMetadata, allowed: Mapping[str, ColumnElement]) -> UnaryExpression:
    column = order_column(page.order, allowed)
    if direction(page.dir) == ASC:
        return column.asc()
    return column.desc()


# PUBLIC_INTERFACE
def where_clause(*predicates: Optional[ColumnElement[bool]]) -> Optional[ColumnElement[bool]]:
    """AND together the present predicates; None when there are none."""
    present = [p for p in predicates if p is not None]
    if not present:
        return None
    return and_(*present)


@dataclass(frozen=True)
class PageQuery:
    """Rendered page request: filter predicates, ordering and window."""

    predicates: tuple[ColumnElement[bool], ...]
    order_by: UnaryExpression
    offset: int = 0
    limit: int = 0

    @property
    def where(self) -> Optional[ColumnElement[bool]]:
        return where_clause(*self.predicates)

    def window(self, stmt: Select) -> Select:
        """Apply filter, ordering and (when limit > 0) LIMIT/OFFSET to ``stmt``."""
        where = self.where
        if where is not None:
            stmt = stmt.where(where)
        stmt = stmt.order_by(self.order_by)
        if self.limit > 0:
            stmt = stmt.limit(self.limit).offset(self.offset)
        return stmt

    def count(self, from_clause: FromClause) -> Select:
        """COUNT(*) over the same source and filter, without ordering or window."""
        stmt = select(func.count()).select_from(from_clause)
        where = self.where
        if where is not None:
            stmt = stmt.where(where)
        return stmt


# PUBLIC_INTERFACE
def build_page_query(
    page: PageMetadata,
    *,
    allowed_orders: Mapping[str, ColumnElement],
    name_column: Optional[ColumnElement] = None,
    metadata_column: Optional[ColumnElement] = None,
    extra: Iterable[Optional[ColumnElement[bool]]] = (),
) -> PageQuery:
    """
    Turn a page request into a PageQuery.

    ``extra`` carries scope predicates (group set, owner, parent key); they are
    ANDed with the name and metadata filters.
    """
    predicates = list(extra)
    if name_column is not None:
        predicates.append(name_predicate(name_column, page.name))
    if metadata_column is not None:
        predicates.append(metadata_predicate(metadata_column, page.metadata))
    return PageQuery(
        predicates=tuple(p for p in predicates if p is not None),
        order_by=order_clause(page, allowed_orders),
        offset=page.offset,
        limit=page.limit,
    )
