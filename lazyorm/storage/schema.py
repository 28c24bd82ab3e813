"""CREATE/DROP TABLE generation from registered field metadata."""
from __future__ import annotations

from typing import Any, Callable, List, Optional

import structlog

from lazyorm.errors import ConfigurationError, SchemaError, StoreError
from lazyorm.mapping.coder import sql_type
from lazyorm.mapping.metadata import TypeDescriptor, describe, persistable_fields
from lazyorm.mapping.naming import camel_to_snake, is_identifier
from lazyorm.observability.metrics import MetricsRegistry
from lazyorm.storage.store import SQLiteStore

LOGGER = structlog.get_logger(__name__)

Translator = Callable[[str], str]


def column_name(field_name: str, translator: Translator) -> str:
    """Translate a field name and check it is safe to splice into SQL."""
    name = translator(field_name)
    if not is_identifier(name):
        raise ConfigurationError(f"Column name {name!r} for field {field_name!r} is not a valid identifier")
    return name


def build_create_sql(descriptor: TypeDescriptor, translator: Translator = camel_to_snake) -> str:
    fields = persistable_fields(descriptor)
    if not fields:
        raise ConfigurationError(f"{descriptor.name} has no persistable fields")
    columns: List[str] = []
    for item in fields:
        definition = f"{column_name(item.name, translator)} {sql_type(item.semantic_type, field_name=item.name)}"
        if item.primary_key:
            definition += " PRIMARY KEY"
        columns.append(definition)
    return f"CREATE TABLE IF NOT EXISTS {descriptor.name}({', '.join(columns)})"


def build_drop_sql(descriptor: TypeDescriptor) -> str:
    return f"DROP TABLE IF EXISTS {descriptor.name}"


def create_table(
    store: SQLiteStore,
    row_type: Any,
    *,
    translator: Translator = camel_to_snake,
    metrics: Optional[MetricsRegistry] = None,
) -> str:
    """Create the table for ``row_type`` unless it already exists; returns the DDL."""
    descriptor = describe(row_type)
    sql = build_create_sql(descriptor, translator)
    try:
        store.execute(sql)
    except StoreError as exc:
        raise SchemaError(f"Creating table {descriptor.name} failed: {exc}") from exc
    if metrics is not None:
        metrics.incr("tables_created")
    LOGGER.info("table_created", table=descriptor.name)
    return sql


def drop_table(store: SQLiteStore, row_type: Any, *, metrics: Optional[MetricsRegistry] = None) -> str:
    """Drop the table for ``row_type`` if present; returns the statement."""
    descriptor = describe(row_type)
    sql = build_drop_sql(descriptor)
    try:
        store.execute(sql)
    except StoreError as exc:
        raise SchemaError(f"Dropping table {descriptor.name} failed: {exc}") from exc
    if metrics is not None:
        metrics.incr("tables_dropped")
    LOGGER.info("table_dropped", table=descriptor.name)
    return sql
