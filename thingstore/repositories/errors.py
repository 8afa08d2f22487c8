"""Domain-level exceptions for repository operations.

Low-level SQLAlchemy and driver errors never leave a repository. They are
translated into the closed set of exceptions below, with the original error
chained as ``__cause__`` for diagnostics.

Translation happens in two steps: ``classify`` reads the storage engine's
signal (PostgreSQL SQLSTATE) and ``translate`` maps that signal, together with
the operation that failed, onto the domain taxonomy. Only ``classify`` knows
about the engine.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional

from sqlalchemy.exc import DBAPIError, NoResultFound, SQLAlchemyError, StatementError

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Base class for repository-related errors."""


class MalformedEntityError(RepositoryError):
    """Raised when an entity has an invalid identifier, an oversized field or an unserializable document."""


class ConflictError(RepositoryError):
    """Raised when a unique or primary key constraint is violated."""


class NotFoundError(RepositoryError):
    """Raised when no entity matches the given identifier."""


class EntityInUseError(RepositoryError):
    """Raised when an entity cannot be removed because other entities still reference it."""


class CreateEntityError(RepositoryError):
    """Raised when saving fails for a reason without a more specific kind."""


class UpdateEntityError(RepositoryError):
    """Raised when updating fails for a reason without a more specific kind."""


class RetrieveEntityError(RepositoryError):
    """Raised when retrieving fails for a reason without a more specific kind."""


class RemoveEntityError(RepositoryError):
    """Raised when removing fails for a reason without a more specific kind."""


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    RETRIEVE = "retrieve"
    REMOVE = "remove"


class Signal(str, Enum):
    """Storage-engine conditions the translator understands."""
    INVALID_FORMAT = "invalid_format"
    UNIQUE_VIOLATION = "unique_violation"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    STRING_TOO_LONG = "string_too_long"
    UNSERIALIZABLE = "unserializable"
    NO_ROWS = "no_rows"


# PostgreSQL SQLSTATE codes.
_SQLSTATE_SIGNALS = {
    "22P02": Signal.INVALID_FORMAT,  # invalid_text_representation
    "23505": Signal.UNIQUE_VIOLATION,
    "23503": Signal.FOREIGN_KEY_VIOLATION,
    "22001": Signal.STRING_TOO_LONG,  # string_data_right_truncation
}

_GENERIC_ERRORS = {
    Operation.CREATE: CreateEntityError,
    Operation.UPDATE: UpdateEntityError,
    Operation.RETRIEVE: RetrieveEntityError,
    Operation.REMOVE: RemoveEntityError,
}


def _sqlstate(orig: Optional[BaseException]) -> Optional[str]:
    # asyncpg's DBAPI adapter copies the code onto the wrapper as both
    # `sqlstate` and `pgcode`; the raw driver error sits in __cause__.
    while orig is not None:
        code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if code:
            return str(code)
        orig = orig.__cause__
    return None


# PUBLIC_INTERFACE
def classify(exc: BaseException) -> Optional[Signal]:
    """Return the engine signal carried by ``exc``, or None when it is not recognized."""
    if isinstance(exc, NoResultFound):
        return Signal.NO_ROWS
    if isinstance(exc, DBAPIError):
        return _SQLSTATE_SIGNALS.get(_sqlstate(exc.orig) or "")
    if isinstance(exc, StatementError):
        # Raised while binding parameters, before the statement reached the server.
        if isinstance(exc.orig, ValueError):
            return Signal.INVALID_FORMAT
        if isinstance(exc.orig, TypeError):
            return Signal.UNSERIALIZABLE
    return None


# PUBLIC_INTERFACE
def translate(exc: BaseException, operation: Operation, entity: str = "entity") -> RepositoryError:
    """
    Map a storage error raised during ``operation`` onto the domain taxonomy.

    A foreign-key violation means a referenced entity is missing on writes
    and that the entity is still referenced on removals.
    An identifier in an invalid format is reported as not found on reads and
    removals, and as malformed on writes.
    """
    if isinstance(exc, RepositoryError):
        return exc

    signal = classify(exc)
    if signal is Signal.INVALID_FORMAT:
        if operation in (Operation.RETRIEVE, Operation.REMOVE):
            error: RepositoryError = NotFoundError(f"{entity} not found")
        else:
            error = MalformedEntityError(f"malformed {entity}: invalid identifier format")
    elif signal is Signal.STRING_TOO_LONG:
        error = MalformedEntityError(f"malformed {entity}: field value too long")
    elif signal is Signal.UNSERIALIZABLE:
        error = MalformedEntityError(f"malformed {entity}: document is not valid JSON")
    elif signal is Signal.UNIQUE_VIOLATION:
        error = ConflictError(f"{entity} already exists")
    elif signal is Signal.FOREIGN_KEY_VIOLATION:
        if operation is Operation.REMOVE:
            error = EntityInUseError(f"{entity} is still referenced")
        else:
            error = NotFoundError(f"{entity} references a missing entity")
    elif signal is Signal.NO_ROWS:
        error = NotFoundError(f"{entity} not found")
    else:
        logger.warning("Unclassified storage error on %s %s: %s", operation.value, entity, exc)
        error = _GENERIC_ERRORS[operation](f"failed to {operation.value} {entity}")

    error.__cause__ = exc
    return error


# PUBLIC_INTERFACE
@contextmanager
def storage_errors(operation: Operation, entity: str = "entity") -> Iterator[None]:
    """
    Translate SQLAlchemy errors raised inside the block.

    Usage:
        with storage_errors(Operation.CREATE, "thing"):
            await session.execute(stmt)
    """
    try:
        yield
    except SQLAlchemyError as exc:
        raise translate(exc, operation, entity) from exc
