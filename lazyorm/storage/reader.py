"""Primary-key SELECT that rebuilds a row, wrapping it when fields are deferred."""
from __future__ import annotations

from typing import Any, Optional

import structlog

from lazyorm.errors import ConfigurationError, MissingPrimaryKey, NotFound, QueryError, StoreError
from lazyorm.fetch.remote import Fetcher
from lazyorm.mapping.coder import decode, encode
from lazyorm.mapping.metadata import (
    TypeDescriptor,
    deferred_field_names,
    describe,
    new_instance,
    persistable_fields,
    primary_key_field,
)
from lazyorm.mapping.naming import camel_to_snake
from lazyorm.mapping.proxy import DeferredLoadProxy, unwrap
from lazyorm.observability.metrics import MetricsRegistry
from lazyorm.storage.schema import Translator, column_name
from lazyorm.storage.store import SQLiteStore

LOGGER = structlog.get_logger(__name__)


def build_select_sql(descriptor: TypeDescriptor, translator: Translator = camel_to_snake) -> str:
    key_field = primary_key_field(descriptor)
    if key_field is None:
        raise ConfigurationError(f"{descriptor.name} has no single primary key")
    columns = ", ".join(column_name(item.name, translator) for item in persistable_fields(descriptor))
    return f"SELECT {columns} FROM {descriptor.name} WHERE {column_name(key_field.name, translator)} = ?"


def load_row(
    store: SQLiteStore,
    template: Any,
    fetcher: Fetcher,
    *,
    translator: Translator = camel_to_snake,
    metrics: Optional[MetricsRegistry] = None,
) -> Any:
    """Load the row whose primary key matches ``template``'s.

    Returns a fresh instance, or a DeferredLoadProxy around one when the type
    declares deferred remote fields. Raises NotFound when no row matches.
    """
    metrics = metrics or MetricsRegistry()
    template = unwrap(template)
    descriptor = describe(template)
    sql = build_select_sql(descriptor, translator)
    key_field = primary_key_field(descriptor)
    key = getattr(template, key_field.name, None)
    if key is None:
        raise MissingPrimaryKey(f"{descriptor.name}.{key_field.name} must be set to load a row")
    param = encode(key, key_field.semantic_type, field_name=key_field.name)

    try:
        rows = store.query(sql, [param])
    except StoreError as exc:
        raise QueryError(f"Loading {descriptor.name} failed: {exc}") from exc
    if not rows:
        metrics.incr("rows_missing")
        raise NotFound(descriptor.name, key)

    row = rows[0]
    instance = new_instance(descriptor)
    for item in persistable_fields(descriptor):
        raw = row[column_name(item.name, translator)]
        setattr(instance, item.name, decode(raw, item.semantic_type, field_name=item.name))
    metrics.incr("rows_loaded")

    deferred = deferred_field_names(descriptor)
    if not deferred:
        return instance
    metrics.incr("proxies_created")
    LOGGER.debug("deferred_proxy_created", table=descriptor.name, fields=sorted(deferred))
    return DeferredLoadProxy(instance, deferred, fetcher, metrics=metrics)
