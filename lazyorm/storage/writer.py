"""Single-row INSERT built from an instance and its field metadata."""
from __future__ import annotations

from typing import Any, List, Optional

import structlog

from lazyorm.errors import ConfigurationError, InsertError, StoreError
from lazyorm.mapping.coder import encode_field
from lazyorm.mapping.metadata import TypeDescriptor, describe, persistable_fields
from lazyorm.mapping.naming import camel_to_snake
from lazyorm.mapping.proxy import unwrap
from lazyorm.observability.metrics import MetricsRegistry
from lazyorm.storage.schema import Translator, column_name
from lazyorm.storage.store import SQLiteStore

LOGGER = structlog.get_logger(__name__)


def build_insert_sql(descriptor: TypeDescriptor, translator: Translator = camel_to_snake) -> str:
    fields = persistable_fields(descriptor)
    if not fields:
        raise ConfigurationError(f"{descriptor.name} has no persistable fields")
    columns = ", ".join(column_name(item.name, translator) for item in fields)
    placeholders = ", ".join("?" for _ in fields)
    return f"INSERT INTO {descriptor.name} ({columns}) VALUES ({placeholders})"


def insert_row(
    store: SQLiteStore,
    instance: Any,
    *,
    translator: Translator = camel_to_snake,
    metrics: Optional[MetricsRegistry] = None,
) -> int:
    """Store every persistable field of ``instance`` as one new row.

    All values are encoded before the statement runs, so a coding error never
    leaves a partial write behind. Store failures, duplicate keys included,
    are rolled back and raised as InsertError without retrying.
    """
    instance = unwrap(instance)
    descriptor = describe(instance)
    sql = build_insert_sql(descriptor, translator)
    params: List[Any] = [encode_field(instance, item) for item in persistable_fields(descriptor)]
    try:
        with store.transaction():
            affected = store.execute_update(sql, params)
    except StoreError as exc:
        raise InsertError(f"Inserting into {descriptor.name} failed: {exc}") from exc
    if metrics is not None:
        metrics.incr("rows_inserted", affected)
    LOGGER.debug("row_inserted", table=descriptor.name, rows=affected)
    return affected
