import pytest

from lazyorm.errors import SchemaError, UnsupportedType
from lazyorm.mapping.metadata import FieldDescriptor, Flag, SemanticType, describe, register_type
from lazyorm.storage.schema import build_create_sql, build_drop_sql, create_table, drop_table
from sample_rows import Note, User


def _table_count(store, name):
    rows = store.query("SELECT COUNT(*) AS n FROM sqlite_master WHERE type = 'table' AND name = ?", [name])
    return rows[0]["n"]


def test_create_sql_text():
    assert build_create_sql(describe(User)) == (
        "CREATE TABLE IF NOT EXISTS User(id INTEGER PRIMARY KEY, name TEXT, avatar BLOB)"
    )
    assert build_create_sql(describe(Note)) == (
        "CREATE TABLE IF NOT EXISTS Note(note_id TEXT PRIMARY KEY, body_text TEXT, attachment BLOB, page_count INTEGER)"
    )
    assert build_drop_sql(describe(User)) == "DROP TABLE IF EXISTS User"


def test_create_table_is_idempotent(store):
    create_table(store, User)
    create_table(store, User)
    assert _table_count(store, "User") == 1


def test_drop_table_is_idempotent(store):
    drop_table(store, User)
    create_table(store, User)
    drop_table(store, User)
    drop_table(store, User)
    assert _table_count(store, "User") == 0


def test_unsupported_field_type_fails_before_the_store(store):
    class Parcel:
        pass

    register_type(
        Parcel,
        [
            FieldDescriptor("code", SemanticType.TEXT, {Flag.PERSISTABLE, Flag.PRIMARY_KEY}),
            FieldDescriptor("weight", "float"),
        ],
    )
    with pytest.raises(UnsupportedType):
        create_table(store, Parcel)
    assert store.metrics.get("statements_executed") == 0


def test_store_failure_becomes_schema_error(store):
    class Select:
        pass

    register_type(Select, [FieldDescriptor("value", SemanticType.TEXT)])
    with pytest.raises(SchemaError):
        create_table(store, Select)
