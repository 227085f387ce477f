"""Persisted list view preferences: visible columns and sort.

Keys follow ``{namespace}{prefix}_visible_columns``, ``..._sort_by`` and
``..._sort_direction``. The column list is stored as a JSON array, the sort
fields as raw strings. Anything unreadable falls back to the entity defaults
and is only logged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

from propdash.config import settings
from propdash.errors import PreferenceStoreError
from propdash.schemas.list_view import PersistedPreference, SortDirection
from propdash.services.entities import EntityDescriptor
from propdash.services.preference_store import PreferenceStore

logger = logging.getLogger(__name__)

VISIBLE_COLUMNS_SUFFIX = "visible_columns"
SORT_BY_SUFFIX = "sort_by"
SORT_DIRECTION_SUFFIX = "sort_direction"


def storage_key(descriptor: EntityDescriptor, suffix: str, namespace: str | None = None) -> str:
    prefix = settings.preference_namespace if namespace is None else namespace
    return f"{prefix}{descriptor.storage_prefix}_{suffix}"


def default_preference(descriptor: EntityDescriptor) -> PersistedPreference:
    return PersistedPreference(
        visible_columns=descriptor.default_visible_columns,
        sort_key=descriptor.default_sort_key,
        sort_direction=descriptor.default_sort_direction,
    )


def sanitize_visible_columns(descriptor: EntityDescriptor, raw: Any) -> list[str]:
    """Intersect stored ids with the known columns, locked column first."""
    if not isinstance(raw, (list, tuple)):
        return descriptor.default_visible_columns
    known = set(descriptor.column_ids)
    sanitized: list[str] = []
    for column_id in raw:
        if isinstance(column_id, str) and column_id in known and column_id not in sanitized:
            sanitized.append(column_id)
    if descriptor.locked_column in sanitized:
        sanitized.remove(descriptor.locked_column)
    sanitized.insert(0, descriptor.locked_column)
    return sanitized


def sanitize_sort(
    descriptor: EntityDescriptor,
    sort_key: Any,
    sort_direction: Any,
) -> tuple[str, SortDirection]:
    """Invalid key or direction falls back to the entity's default pair."""
    if not isinstance(sort_key, str) or sort_key not in descriptor.sort_keys:
        return descriptor.default_sort_key, descriptor.default_sort_direction
    try:
        direction = SortDirection(sort_direction)
    except ValueError:
        direction = descriptor.default_sort_direction
    return sort_key, direction


def order_columns(descriptor: EntityDescriptor, column_ids: Iterable[str]) -> list[str]:
    """Return ``column_ids`` in declaration order."""
    wanted = set(column_ids)
    return [column_id for column_id in descriptor.column_ids if column_id in wanted]


def _read(store: PreferenceStore, key: str) -> str | None:
    try:
        return store.get(key)
    except PreferenceStoreError as exc:
        logger.warning("Error reading preference %s: %s", key, exc)
        return None


def _write(store: PreferenceStore, key: str, value: str) -> bool:
    try:
        store.set(key, value)
    except PreferenceStoreError as exc:
        logger.warning("Error saving preference %s: %s", key, exc)
        return False
    return True


def load_preference(
    store: PreferenceStore,
    descriptor: EntityDescriptor,
    namespace: str | None = None,
) -> PersistedPreference:
    visible_columns = descriptor.default_visible_columns
    raw_columns = _read(store, storage_key(descriptor, VISIBLE_COLUMNS_SUFFIX, namespace))
    if raw_columns:
        try:
            parsed = json.loads(raw_columns)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Discarding unreadable %s column preference: %s", descriptor.entity_type, exc
            )
        else:
            visible_columns = sanitize_visible_columns(descriptor, parsed)

    sort_key, sort_direction = sanitize_sort(
        descriptor,
        _read(store, storage_key(descriptor, SORT_BY_SUFFIX, namespace)),
        _read(store, storage_key(descriptor, SORT_DIRECTION_SUFFIX, namespace)),
    )
    return PersistedPreference(
        visible_columns=visible_columns,
        sort_key=sort_key,
        sort_direction=sort_direction,
    )


def save_visible_columns(
    store: PreferenceStore,
    descriptor: EntityDescriptor,
    visible_columns: list[str],
    namespace: str | None = None,
) -> bool:
    return _write(
        store,
        storage_key(descriptor, VISIBLE_COLUMNS_SUFFIX, namespace),
        json.dumps(list(visible_columns)),
    )


def save_sort(
    store: PreferenceStore,
    descriptor: EntityDescriptor,
    sort_key: str | None = None,
    sort_direction: SortDirection | None = None,
    namespace: str | None = None,
) -> bool:
    ok = True
    if sort_key is not None:
        ok = _write(store, storage_key(descriptor, SORT_BY_SUFFIX, namespace), sort_key) and ok
    if sort_direction is not None:
        ok = (
            _write(
                store,
                storage_key(descriptor, SORT_DIRECTION_SUFFIX, namespace),
                SortDirection(sort_direction).value,
            )
            and ok
        )
    return ok


def save_preference(
    store: PreferenceStore,
    descriptor: EntityDescriptor,
    preference: PersistedPreference,
    namespace: str | None = None,
) -> bool:
    columns_ok = save_visible_columns(store, descriptor, preference.visible_columns, namespace)
    sort_ok = save_sort(
        store, descriptor, preference.sort_key, preference.sort_direction, namespace
    )
    return columns_ok and sort_ok


def reset_preference(
    store: PreferenceStore,
    descriptor: EntityDescriptor,
    namespace: str | None = None,
) -> PersistedPreference:
    preference = default_preference(descriptor)
    save_preference(store, descriptor, preference, namespace)
    return preference
