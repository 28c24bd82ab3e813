import sqlite3

import pytest

from lazyorm.storage.database import Database
from lazyorm.storage.store import SQLiteStore
from sample_rows import CountingFetcher


@pytest.fixture()
def fetcher():
    return CountingFetcher()


@pytest.fixture()
def store():
    store = SQLiteStore(sqlite3.connect(":memory:"))
    yield store
    store.close()


@pytest.fixture()
def database(store, fetcher):
    return Database(store, fetcher=fetcher)
