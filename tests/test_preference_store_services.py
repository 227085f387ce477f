from unittest.mock import MagicMock

import pytest
import redis
from sqlalchemy.exc import OperationalError

from propdash.config import Settings
from propdash.errors import PreferenceStoreError
from propdash.models.list_view_preference import ListViewPreference
from propdash.services import preference_store
from propdash.services.preference_store import (
    DatabasePreferenceStore,
    InMemoryPreferenceStore,
    RedisPreferenceStore,
    build_preference_store,
)


def test_memory_store_round_trip():
    store = InMemoryPreferenceStore({"owners_sort_by": "name"})

    store.set("owners_sort_direction", "asc")

    assert store.get("owners_sort_by") == "name"
    assert store.get("owners_sort_direction") == "asc"
    assert store.get("missing") is None
    assert sorted(store.keys()) == ["owners_sort_by", "owners_sort_direction"]


def test_database_store_upserts(db_session):
    store = DatabasePreferenceStore(db_session)

    assert store.get("contacts_sort_by") is None
    store.set("contacts_sort_by", "full_name")
    store.set("contacts_sort_by", "status")

    rows = (
        db_session.query(ListViewPreference)
        .filter(ListViewPreference.key == "contacts_sort_by")
        .all()
    )
    assert len(rows) == 1
    assert store.get("contacts_sort_by") == "status"


def test_database_store_wraps_sqlalchemy_errors():
    db = MagicMock()
    db.query.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
    store = DatabasePreferenceStore(db)

    with pytest.raises(PreferenceStoreError):
        store.get("contacts_sort_by")
    with pytest.raises(PreferenceStoreError):
        store.set("contacts_sort_by", "status")
    db.rollback.assert_called_once()


def test_redis_store_prefixes_keys():
    client = MagicMock()
    client.get.return_value = "asc"
    store = RedisPreferenceStore(client, prefix="list_view")

    store.set("contacts_sort_direction", "asc")

    client.set.assert_called_once_with("list_view:contacts_sort_direction", "asc")
    assert store.get("contacts_sort_direction") == "asc"
    client.get.assert_called_once_with("list_view:contacts_sort_direction")


def test_redis_store_falls_back_to_memory_on_errors():
    client = MagicMock()
    client.set.side_effect = redis.ConnectionError("down")
    client.get.side_effect = redis.ConnectionError("down")
    fallback = InMemoryPreferenceStore()
    store = RedisPreferenceStore(client, fallback=fallback)

    store.set("owners_sort_by", "name")

    assert fallback.get("owners_sort_by") == "name"
    assert store.get("owners_sort_by") == "name"


def test_redis_store_without_client_or_fallback_raises():
    store = RedisPreferenceStore(None)

    with pytest.raises(PreferenceStoreError):
        store.get("owners_sort_by")
    with pytest.raises(PreferenceStoreError):
        store.set("owners_sort_by", "name")


def test_redis_from_url_handles_unreachable_server(monkeypatch):
    client = MagicMock()
    client.ping.side_effect = redis.ConnectionError("refused")
    monkeypatch.setattr(redis.Redis, "from_url", MagicMock(return_value=client))

    store = RedisPreferenceStore.from_url("redis://localhost:6390/0")

    assert store.client is None


def test_build_store_by_backend(db_session, monkeypatch):
    monkeypatch.setattr(preference_store, "_SHARED_REDIS_STORES", {})
    memory = build_preference_store(Settings(preference_backend="memory"))
    assert memory is preference_store._SHARED_MEMORY_STORE

    database = build_preference_store(Settings(preference_backend="database"), db=db_session)
    assert isinstance(database, DatabasePreferenceStore)

    redis_store = build_preference_store(Settings(preference_backend="redis", redis_url=None))
    assert isinstance(redis_store, RedisPreferenceStore)
    assert redis_store.client is None
    assert redis_store.fallback is preference_store._SHARED_MEMORY_STORE


def test_database_backend_requires_session():
    with pytest.raises(PreferenceStoreError):
        build_preference_store(Settings(preference_backend="database"))


def test_settings_reject_unknown_backend():
    with pytest.raises(ValueError):
        Settings(preference_backend="cookies")


def test_redis_backend_reuses_one_client(monkeypatch):
    client = MagicMock()
    from_url = MagicMock(return_value=client)
    monkeypatch.setattr(redis.Redis, "from_url", from_url)
    monkeypatch.setattr(preference_store, "_SHARED_REDIS_STORES", {})
    config = Settings(preference_backend="redis", redis_url="redis://prefs:6379/0")

    first = build_preference_store(config)
    second = build_preference_store(config)

    assert first is second
    assert first.client is client
    from_url.assert_called_once_with("redis://prefs:6379/0", decode_responses=True)
    client.ping.assert_called_once()
