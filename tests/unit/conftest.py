"""Shared fixtures for unit tests.

Repositories receive an AsyncMock session; each ``execute`` call returns a
MagicMock result configured with ``make_result``.
"""

from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql


def make_result(
    *,
    first: Optional[dict] = None,
    rows: Optional[list] = None,
    scalar: Any = None,
    scalars: Optional[list] = None,
    rowcount: int = 1,
) -> MagicMock:
    """Build a result object answering the accessors the repositories use."""
    result = MagicMock()
    result.mappings.return_value.first.return_value = first
    result.mappings.return_value.all.return_value = rows or []
    result.scalar_one.return_value = scalar
    result.scalar_one_or_none.return_value = scalar
    result.scalars.return_value.all.return_value = scalars or []
    result.rowcount = rowcount
    return result


def compile_sql(statement) -> str:
    """Render a statement with the PostgreSQL dialect."""
    return str(statement.compile(dialect=postgresql.dialect()))


def compile_params(statement) -> dict:
    return statement.compile(dialect=postgresql.dialect()).params


def executed(session: AsyncMock, index: int = 0):
    """Return the statement passed to the ``index``-th ``session.execute`` call."""
    return session.execute.call_args_list[index][0][0]


@pytest.fixture
def mock_session() -> AsyncMock:
    session = AsyncMock()
    session.execute.return_value = make_result()
    return session
