import dataclasses

import pytest

from lazyorm.errors import FetchError
from lazyorm.mapping.metadata import describe, key_only
from lazyorm.mapping.proxy import DeferredLoadProxy, RemoteRef, Resolved, Stored, field_state, is_proxy, unwrap
from lazyorm.storage.database import Database
from sample_rows import CountingFetcher, User

PIXELS = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


@pytest.fixture()
def users(database):
    database.create_table(User)
    database.insert_row(User(id=1, name="Ann", avatar=b"http://x/a.png"))
    database.insert_row(User(id=2, name="Bo", avatar=PIXELS))
    return database


def test_url_avatar_is_fetched_on_first_read(users, fetcher):
    loaded = users.load_row(key_only(User, 1))
    assert is_proxy(loaded)
    assert isinstance(unwrap(loaded), User)
    assert describe(loaded) is describe(User)
    assert loaded.name == "Ann"
    assert loaded.id == 1
    assert fetcher.calls == []

    assert loaded.avatar == b"fetched:http://x/a.png"
    assert fetcher.calls == ["http://x/a.png"]


def test_fetched_content_is_cached(users, fetcher):
    loaded = users.load_by_key(User, 1)
    assert field_state(loaded, "avatar") == RemoteRef("http://x/a.png")
    first = loaded.avatar
    second = loaded.avatar
    assert first == second
    assert fetcher.calls == ["http://x/a.png"]
    assert field_state(loaded, "avatar") == Resolved(first)
    assert users.metrics.get("remote_fetches") == 1


def test_raw_bytes_are_returned_without_fetching(users, fetcher):
    loaded = users.load_by_key(User, 2)
    assert loaded.avatar == PIXELS
    assert field_state(loaded, "avatar") == Stored(PIXELS)
    assert fetcher.calls == []


def test_null_deferred_field(users, fetcher):
    users.insert_row(User(id=3, name="Cy"))
    loaded = users.load_by_key(User, 3)
    assert loaded.avatar is None
    assert fetcher.calls == []


def test_fetch_failure_surfaces_and_retries(store):
    fetcher = CountingFetcher(failures=1)
    database = Database(store, fetcher=fetcher)
    database.create_table(User)
    database.insert_row(User(id=1, name="Ann", avatar=b"https://x/a.png"))
    loaded = database.load_by_key(User, 1)

    with pytest.raises(FetchError) as excinfo:
        loaded.avatar
    assert excinfo.value.url == "https://x/a.png"
    assert loaded.name == "Ann"
    assert field_state(loaded, "avatar") == RemoteRef("https://x/a.png")
    assert database.metrics.get("fetch_failures") == 1

    assert loaded.avatar == b"fetched:https://x/a.png"
    assert len(fetcher.calls) == 2


def test_unwrap_exposes_stored_values(users, fetcher):
    loaded = users.load_by_key(User, 1)
    raw = unwrap(loaded)
    assert type(raw) is User
    assert raw.avatar == b"http://x/a.png"
    assert loaded == User(id=1, name="Ann", avatar=b"http://x/a.png")
    assert fetcher.calls == []


def test_methods_and_other_attributes_pass_through(users):
    loaded = users.load_by_key(User, 2)
    assert loaded.display_name() == "BO"
    with pytest.raises(AttributeError):
        loaded.missing_attribute


def test_assignment_reclassifies_deferred_field(users, fetcher):
    loaded = users.load_by_key(User, 2)
    loaded.avatar = b"https://y/b.png"
    assert unwrap(loaded).avatar == b"https://y/b.png"
    assert loaded.avatar == b"fetched:https://y/b.png"
    loaded.name = "Bob"
    assert unwrap(loaded).name == "Bob"


def test_reinserting_a_proxy_stores_raw_values(users, fetcher):
    loaded = users.load_by_key(User, 1)
    loaded.id = 10
    users.insert_row(loaded)
    assert unwrap(users.load_by_key(User, 10)).avatar == b"http://x/a.png"
    assert fetcher.calls == []


def test_repr_lists_pending_fields(fetcher):
    proxy = DeferredLoadProxy(User(id=5, avatar=b"http://x/p.png"), ["avatar"], fetcher)
    assert "pending=['avatar']" in repr(proxy)
    proxy.avatar
    assert "pending=[]" in repr(proxy)


def test_equality_is_symmetric_and_never_fetches(users, fetcher):
    loaded = users.load_by_key(User, 1)
    plain = User(id=1, name="Ann", avatar=b"http://x/a.png")
    assert (loaded == plain) is True
    assert (plain == loaded) is True
    assert plain != users.load_by_key(User, 2)
    assert loaded != "Ann"
    assert fetcher.calls == []
    assert field_state(loaded, "avatar") == RemoteRef("http://x/a.png")


def test_dataclass_helpers_work_on_unwrapped_row(users, fetcher):
    loaded = users.load_by_key(User, 1)
    with pytest.raises(TypeError):
        dataclasses.asdict(loaded)
    assert dataclasses.asdict(unwrap(loaded)) == {"id": 1, "name": "Ann", "avatar": b"http://x/a.png"}
    assert fetcher.calls == []


def test_row_methods_see_raw_stored_values(fetcher):
    proxy = DeferredLoadProxy(User(id=6, name="dee", avatar=b"http://x/d.png"), ["avatar"], fetcher)
    assert proxy.display_name() == "DEE"
    assert proxy.avatar_bytes() == b"http://x/d.png"
    assert fetcher.calls == []
