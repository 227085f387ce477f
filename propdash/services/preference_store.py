"""Durable key-value storage for list view preferences."""

from __future__ import annotations

import logging
from typing import Protocol, cast

import redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from propdash.config import Settings, settings as default_settings
from propdash.errors import PreferenceStoreError
from propdash.models.list_view_preference import ListViewPreference

logger = logging.getLogger(__name__)


class PreferenceStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryPreferenceStore:
    def __init__(self, initial: dict[str, str] | None = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._values)


class DatabasePreferenceStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> str | None:
        try:
            record = (
                self.db.query(ListViewPreference)
                .filter(ListViewPreference.key == key)
                .first()
            )
        except SQLAlchemyError as exc:
            raise PreferenceStoreError(f"Preference read failed for {key}") from exc
        return record.value if record else None

    def set(self, key: str, value: str) -> None:
        try:
            record = (
                self.db.query(ListViewPreference)
                .filter(ListViewPreference.key == key)
                .first()
            )
            if record:
                record.value = value
            else:
                self.db.add(ListViewPreference(key=key, value=value))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PreferenceStoreError(f"Preference write failed for {key}") from exc


class RedisPreferenceStore:
    """Redis-first store; falls back to process memory when allowed.

    Preferences are shared by every dashboard session pointed at the same
    Redis, so concurrent writers simply overwrite each other.
    """

    def __init__(
        self,
        client: redis.Redis | None,
        *,
        prefix: str = "list_view",
        fallback: InMemoryPreferenceStore | None = None,
    ):
        self.client = client
        self.prefix = prefix
        self.fallback = fallback

    @classmethod
    def from_url(
        cls,
        redis_url: str | None,
        *,
        prefix: str = "list_view",
        fallback: InMemoryPreferenceStore | None = None,
    ) -> RedisPreferenceStore:
        if not redis_url:
            return cls(None, prefix=prefix, fallback=fallback)
        try:
            client = redis.Redis.from_url(redis_url, decode_responses=True)
            client.ping()
        except redis.RedisError as exc:
            logger.warning("Preference Redis unavailable, using in-memory fallback: %s", exc)
            return cls(None, prefix=prefix, fallback=fallback)
        return cls(client, prefix=prefix, fallback=fallback)

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}" if self.prefix else key

    def get(self, key: str) -> str | None:
        if self.client is not None:
            try:
                return cast(str | None, self.client.get(self._key(key)))
            except redis.RedisError as exc:
                logger.warning("Preference read failed, falling back to memory: %s", exc)
        if self.fallback is not None:
            return self.fallback.get(key)
        raise PreferenceStoreError("Preference store unavailable and no fallback configured")

    def set(self, key: str, value: str) -> None:
        if self.client is not None:
            try:
                self.client.set(self._key(key), value)
                if self.fallback is not None:
                    self.fallback.delete(key)
                return
            except redis.RedisError as exc:
                logger.warning("Preference write failed, falling back to memory: %s", exc)
        if self.fallback is not None:
            self.fallback.set(key, value)
            return
        raise PreferenceStoreError("Preference store unavailable and no fallback configured")


_SHARED_MEMORY_STORE = InMemoryPreferenceStore()
_SHARED_REDIS_STORES: dict[str, RedisPreferenceStore] = {}


def _shared_redis_store(redis_url: str | None) -> RedisPreferenceStore:
    """One client per URL for the life of the process."""
    cache_key = redis_url or ""
    store = _SHARED_REDIS_STORES.get(cache_key)
    if store is None:
        store = RedisPreferenceStore.from_url(redis_url, fallback=_SHARED_MEMORY_STORE)
        _SHARED_REDIS_STORES[cache_key] = store
    return store


def build_preference_store(
    settings: Settings | None = None,
    db: Session | None = None,
) -> PreferenceStore:
    """Pick the store configured by ``PREFERENCE_BACKEND``."""
    settings = settings or default_settings
    backend = settings.preference_backend
    if backend == "database":
        if db is None:
            raise PreferenceStoreError("Database preference store requires a session")
        return DatabasePreferenceStore(db)
    if backend == "redis":
        return _shared_redis_store(settings.redis_url)
    return _SHARED_MEMORY_STORE
