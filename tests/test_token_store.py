import json

import pytest

from manifesto.client import FileStorage, MemoryStorage, Session, TokenStore
from manifesto.client.token_store import AUTH_STORAGE_KEY, MAX_RECORD_AGE, is_auth_key


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class BrokenStorage(MemoryStorage):
    def set_item(self, key, value):
        raise OSError("quota exceeded")


def make_session(clock, **fields):
    values = {
        "user": {"id": "u1", "email": "reader@example.com"},
        "access_token": "access-1",
        "refresh_token": "refresh-1",
        "expires_at": clock() + 3600,
    }
    values.update(fields)
    return Session(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage, clock):
    return TokenStore(storage, clock=clock)


def test_save_and_load(store, storage, clock):
    assert store.save(make_session(clock)) is True

    record = json.loads(storage.get_item(AUTH_STORAGE_KEY))
    assert record["token"] == "access-1"
    assert record["refreshToken"] == "refresh-1"
    assert record["savedAt"] == clock()

    loaded = store.load()
    assert loaded.user_id == "u1"
    assert loaded.access_token == "access-1"
    assert loaded.issued_at == clock()


def test_load_empty_storage(store):
    assert store.load() is None


def test_record_older_than_a_week_is_purged(store, storage, clock):
    store.save(make_session(clock, expires_at=clock() + 30 * 86400))
    clock.advance(MAX_RECORD_AGE + 1)

    assert store.load() is None
    assert storage.get_item(AUTH_STORAGE_KEY) is None


def test_record_just_under_a_week_survives(store, clock):
    store.save(make_session(clock))
    clock.advance(MAX_RECORD_AGE)
    assert store.load() is not None


@pytest.mark.parametrize("raw", [
    "not json",
    "[]",
    json.dumps({"user": {"id": "u1"}, "savedAt": 1}),
    json.dumps({"user": {"id": "u1"}, "token": "t"}),
    json.dumps({"user": "u1", "token": "t", "savedAt": 1}),
    json.dumps({"user": {"id": "u1"}, "token": "t", "savedAt": 1, "expiresAt": "soon"}),
])
def test_malformed_record_is_purged(store, storage, raw):
    storage.set_item(AUTH_STORAGE_KEY, raw)
    assert store.load() is None
    assert storage.get_item(AUTH_STORAGE_KEY) is None


def test_save_failure_is_reported(clock):
    store = TokenStore(BrokenStorage(), clock=clock)
    assert store.save(make_session(clock)) is False


def test_clear_removes_auth_leftovers_only(store, storage, clock):
    store.save(make_session(clock))
    storage.set_item("sb-project-auth-token", "x")
    storage.set_item("supabase.session", "x")
    storage.set_item("cart-preview", "keep")

    store.clear()
    assert storage.keys() == ["cart-preview"]


@pytest.mark.parametrize("key, expected", [
    ("manifesto-auth-data", True),
    ("REFRESH_TOKEN", True),
    ("theme", False),
])
def test_is_auth_key(key, expected):
    assert is_auth_key(key) is expected


def test_session_validity_window(clock):
    session = make_session(clock, expires_at=clock() + 30)
    assert session.is_valid(clock(), skew=29) is True
    assert session.is_valid(clock(), skew=30) is False
    assert make_session(clock, expires_at=None).is_valid(clock(), skew=0) is False


def test_file_storage_persists_across_instances(tmp_path, clock):
    path = tmp_path / "state" / "auth.json"
    TokenStore(FileStorage(path), clock=clock).save(make_session(clock))

    loaded = TokenStore(FileStorage(path), clock=clock).load()
    assert loaded.access_token == "access-1"
    assert [p.name for p in path.parent.iterdir()] == ["auth.json"]


def test_file_storage_remove_and_keys(tmp_path):
    storage = FileStorage(tmp_path / "kv.json")
    assert storage.keys() == []
    storage.set_item("a", "1")
    storage.set_item("b", "2")
    storage.remove_item("a")
    storage.remove_item("missing")
    assert storage.keys() == ["b"]
    assert storage.get_item("a") is None


def test_file_storage_rejects_non_object(tmp_path):
    path = tmp_path / "kv.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        FileStorage(path).get_item("a")
