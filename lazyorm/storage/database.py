"""Connection-owning facade over the schema manager, writer and reader."""
from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Optional, Type, TypeVar, Union

import structlog

from lazyorm.config import Settings
from lazyorm.fetch.remote import Fetcher, HttpFetcher
from lazyorm.mapping.metadata import key_only
from lazyorm.mapping.naming import camel_to_snake
from lazyorm.observability.metrics import MetricsRegistry
from lazyorm.storage.reader import load_row
from lazyorm.storage.schema import Translator, create_table, drop_table
from lazyorm.storage.store import SQLiteStore
from lazyorm.storage.writer import insert_row

LOGGER = structlog.get_logger(__name__)

T = TypeVar("T")


class Database:
    """Maps registered row types onto one SQLite connection."""

    def __init__(
        self,
        store: SQLiteStore,
        *,
        fetcher: Optional[Fetcher] = None,
        translator: Translator = camel_to_snake,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._store = store
        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher or HttpFetcher()
        self._translator = translator
        self.metrics = metrics or store.metrics

    @classmethod
    def open(
        cls,
        path: Union[str, Path, None] = None,
        *,
        settings: Optional[Settings] = None,
        fetcher: Optional[Fetcher] = None,
        translator: Translator = camel_to_snake,
    ) -> "Database":
        """Open the database at ``path`` (or the configured one)."""
        settings = settings or Settings()
        metrics = MetricsRegistry()
        store = SQLiteStore.open(path or settings.store.path, metrics=metrics)
        owns_fetcher = fetcher is None
        if fetcher is None:
            fetcher = HttpFetcher(
                user_agent=settings.fetch.user_agent,
                timeout=settings.fetch.timeout_seconds,
                follow_redirects=settings.fetch.follow_redirects,
            )
        database = cls(store, fetcher=fetcher, translator=translator, metrics=metrics)
        database._owns_fetcher = owns_fetcher
        return database

    @property
    def connection(self) -> sqlite3.Connection:
        return self._store.connection

    def create_table(self, row_type: Any) -> str:
        return create_table(self._store, row_type, translator=self._translator, metrics=self.metrics)

    def drop_table(self, row_type: Any) -> str:
        return drop_table(self._store, row_type, metrics=self.metrics)

    def insert_row(self, instance: Any) -> int:
        return insert_row(self._store, instance, translator=self._translator, metrics=self.metrics)

    def load_row(self, template: T) -> T:
        return load_row(self._store, template, self._fetcher, translator=self._translator, metrics=self.metrics)

    def load_by_key(self, row_type: Type[T], key: Any) -> T:
        """Load a row given only its type and primary-key value."""
        return self.load_row(key_only(row_type, key))

    def close(self) -> None:
        self._store.close()
        if self._owns_fetcher and isinstance(self._fetcher, HttpFetcher):
            self._fetcher.close()
        LOGGER.debug("database_closed")

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
