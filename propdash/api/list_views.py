from collections.abc import Iterator

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from propdash.config import settings
from propdash.db import get_db
from propdash.errors import InvalidSortError
from propdash.schemas.list_view import (
    EntityColumnsResponse,
    EntitySummary,
    PersistedPreference,
    PreferenceResponse,
    PreferenceUpdate,
)
from propdash.services import preferences as preference_service
from propdash.services.entities import EntityRegistry
from propdash.services.preference_store import PreferenceStore, build_preference_store

router = APIRouter(prefix="/list-views", tags=["list-views"])


def get_preference_store(db: Session = Depends(get_db)) -> Iterator[PreferenceStore]:
    yield build_preference_store(settings, db=db)


@router.get("", response_model=list[EntitySummary])
def list_entities():
    return [
        EntitySummary(
            entity_type=descriptor.entity_type,
            endpoint=descriptor.endpoint,
            list_mode=descriptor.list_mode.value,
            locked_column=descriptor.locked_column,
        )
        for descriptor in EntityRegistry.all()
    ]


@router.get("/{entity_type}/columns", response_model=EntityColumnsResponse)
def get_entity_columns(entity_type: str):
    descriptor = EntityRegistry.get(entity_type)
    return EntityColumnsResponse(
        entity_type=descriptor.entity_type,
        columns=list(descriptor.columns),
        sort_options=list(descriptor.sort_options),
        default_sort_key=descriptor.default_sort_key,
        default_sort_direction=descriptor.default_sort_direction,
        locked_column=descriptor.locked_column,
    )


@router.get("/{entity_type}/preferences", response_model=PreferenceResponse)
def get_preferences(
    entity_type: str,
    store: PreferenceStore = Depends(get_preference_store),
):
    descriptor = EntityRegistry.get(entity_type)
    return PreferenceResponse(
        entity_type=entity_type,
        preference=preference_service.load_preference(store, descriptor),
    )


@router.put("/{entity_type}/preferences", response_model=PreferenceResponse)
def save_preferences(
    entity_type: str,
    payload: PreferenceUpdate,
    store: PreferenceStore = Depends(get_preference_store),
):
    descriptor = EntityRegistry.get(entity_type)
    if payload.sort_key is not None and payload.sort_key not in descriptor.sort_keys:
        raise InvalidSortError(
            f"Invalid sort key for {entity_type}: {payload.sort_key}",
            details={"allowed": descriptor.sort_keys},
        )

    current = preference_service.load_preference(store, descriptor)
    visible_columns = current.visible_columns
    if payload.visible_columns is not None:
        visible_columns = preference_service.sanitize_visible_columns(
            descriptor, payload.visible_columns
        )
    preference = PersistedPreference(
        visible_columns=visible_columns,
        sort_key=payload.sort_key or current.sort_key,
        sort_direction=payload.sort_direction or current.sort_direction,
    )
    preference_service.save_preference(store, descriptor, preference)
    return PreferenceResponse(entity_type=entity_type, preference=preference)


@router.delete("/{entity_type}/preferences", response_model=PreferenceResponse)
def reset_preferences(
    entity_type: str,
    store: PreferenceStore = Depends(get_preference_store),
):
    descriptor = EntityRegistry.get(entity_type)
    preference = preference_service.reset_preference(store, descriptor)
    return PreferenceResponse(entity_type=entity_type, preference=preference)
