from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SortDirection(str, enum.Enum):
    asc = "asc"
    desc = "desc"


class ListStatus(str, enum.Enum):
    idle = "idle"
    loading = "loading"
    loaded = "loaded"
    errored = "errored"


class ColumnSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, max_length=120)
    title: str
    default_visible: bool = True
    locked: bool = False


class SortOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1, max_length=120)
    label: str


class ListQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    search_text: str = ""
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1)
    sort_key: str
    sort_direction: SortDirection = SortDirection.desc
    filters: dict[str, str] = Field(default_factory=dict)

    def to_params(self, include_sort: bool = True, include_paging: bool = True) -> dict[str, Any]:
        """Render the named request parameters the backend expects.

        Empty search text and empty filter values are left out entirely so
        the backend treats them as "no filter".
        """
        params: dict[str, Any] = {}
        if include_paging:
            params["page"] = self.page
            params["per_page"] = self.page_size
        if self.search_text:
            params["search"] = self.search_text
        if include_sort:
            params["sort_by"] = self.sort_key
            params["sort_direction"] = self.sort_direction.value
        for key, value in self.filters.items():
            if value is not None and value != "":
                params[key] = value
        return params


class PersistedPreference(BaseModel):
    visible_columns: list[str]
    sort_key: str
    sort_direction: SortDirection


def _as_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


class PagedResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: tuple[dict[str, Any], ...] = ()
    total_items: int = Field(default=0, ge=0)
    total_pages: int = Field(default=1, ge=1)
    current_page: int = Field(default=1, ge=1)
    per_page: int = Field(default=50, ge=1)

    @classmethod
    def from_payload(cls, payload: Any, per_page: int) -> PagedResult:
        """Build a result from a backend response body.

        Accepts a Laravel paginator (``data`` plus ``current_page``,
        ``last_page``, ``total``, ``per_page``), a resource collection
        (``data`` plus a ``meta`` object), either of those wrapped in a
        ``data`` envelope, or a bare list of records.
        """
        if isinstance(payload, list):
            items = payload
            meta: dict[str, Any] = {}
        elif isinstance(payload, dict):
            data = payload.get("data")
            meta = payload.get("meta") if isinstance(payload.get("meta"), dict) else payload
            if isinstance(data, dict) and isinstance(data.get("data"), list):
                meta = data.get("meta") if isinstance(data.get("meta"), dict) else data
                data = data["data"]
            if not isinstance(data, list):
                raise ValueError("Paged response has no data list")
            items = data
        else:
            raise ValueError("Paged response must be an object or a list")

        records = tuple(item for item in items if isinstance(item, dict))
        return cls(
            items=records,
            total_items=_as_int(meta.get("total"), len(records)),
            total_pages=_as_int(meta.get("last_page"), 1),
            current_page=_as_int(meta.get("current_page"), 1),
            per_page=_as_int(meta.get("per_page"), per_page),
        )


class ListViewState(BaseModel):
    entity_type: str
    query: ListQuery
    status: ListStatus
    error: str | None = None
    visible_columns: list[str]
    working_columns: list[str] | None = None
    result: PagedResult | None = None


class EntitySummary(BaseModel):
    entity_type: str
    endpoint: str
    list_mode: str
    locked_column: str


class EntityColumnsResponse(BaseModel):
    entity_type: str
    columns: list[ColumnSpec]
    sort_options: list[SortOption]
    default_sort_key: str
    default_sort_direction: SortDirection
    locked_column: str


class PreferenceUpdate(BaseModel):
    visible_columns: list[str] | None = None
    sort_key: str | None = Field(default=None, min_length=1, max_length=120)
    sort_direction: SortDirection | None = None


class PreferenceResponse(BaseModel):
    entity_type: str
    preference: PersistedPreference
