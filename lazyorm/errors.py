"""Exception hierarchy raised by the mapping engine and its collaborators."""
from __future__ import annotations

from typing import Any


class PersistenceError(Exception):
    """Root of every error raised by lazyorm."""


class ConfigurationError(PersistenceError):
    """A type's field metadata cannot be mapped as declared."""


class UnsupportedType(ConfigurationError):
    """A field declares a semantic type the value coder does not handle."""

    def __init__(self, semantic_type: Any, *, field_name: str | None = None) -> None:
        self.semantic_type = semantic_type
        self.field_name = field_name
        where = f" on field {field_name!r}" if field_name else ""
        super().__init__(f"Unsupported semantic type {semantic_type!r}{where}")


class MissingPrimaryKey(ConfigurationError):
    """A load was requested without a usable primary key."""


class ValueCodingError(PersistenceError):
    """An in-memory value does not match its field's declared semantic type."""


class StoreError(PersistenceError):
    """The underlying SQL store rejected a statement."""


class SchemaError(StoreError):
    """CREATE/DROP TABLE failed."""


class InsertError(StoreError):
    """INSERT failed, including constraint violations."""


class QueryError(StoreError):
    """SELECT failed."""


class NotFound(PersistenceError):
    """No row matches the requested primary key."""

    def __init__(self, table: str, key: Any) -> None:
        self.table = table
        self.key = key
        super().__init__(f"No {table} row with primary key {key!r}")


class FetchError(PersistenceError):
    """Remote content behind a deferred field could not be retrieved."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")
