"""Fakes for the list view collaborators."""

import asyncio
from typing import Any

from propdash.errors import PreferenceStoreError, ProviderError
from propdash.schemas.list_view import ListQuery, PagedResult


def make_result(items: list[dict[str, Any]] | None = None, **kwargs) -> PagedResult:
    items = items or []
    return PagedResult(
        items=tuple(items),
        total_items=kwargs.get("total_items", len(items)),
        total_pages=kwargs.get("total_pages", 1),
        current_page=kwargs.get("current_page", 1),
        per_page=kwargs.get("per_page", 50),
    )


class FakePagedDataProvider:
    """Answers every fetch immediately with ``result`` or raises ``error``."""

    def __init__(self, result: PagedResult | None = None):
        self.result = result or make_result()
        self.error: ProviderError | None = None
        self.calls: list[tuple[str, ListQuery]] = []

    @property
    def queries(self) -> list[ListQuery]:
        return [query for _, query in self.calls]

    async def fetch(self, entity_type: str, query: ListQuery) -> PagedResult:
        self.calls.append((entity_type, query))
        if self.error is not None:
            raise self.error
        return self.result


class ControlledPagedDataProvider:
    """Holds each fetch open until the test resolves it."""

    def __init__(self):
        self.pending: list[tuple[ListQuery, asyncio.Future]] = []

    async def fetch(self, entity_type: str, query: ListQuery) -> PagedResult:
        future = asyncio.get_running_loop().create_future()
        self.pending.append((query, future))
        return await future

    async def wait_for_requests(self, count: int) -> None:
        while len(self.pending) < count:
            await asyncio.sleep(0)

    def resolve(self, index: int, result: PagedResult) -> None:
        self.pending[index][1].set_result(result)

    def fail(self, index: int, error: ProviderError) -> None:
        self.pending[index][1].set_exception(error)


class FailingPreferenceStore:
    def __init__(self):
        self.write_attempts = 0

    def get(self, key: str) -> str | None:
        raise PreferenceStoreError(f"cannot read {key}")

    def set(self, key: str, value: str) -> None:
        self.write_attempts += 1
        raise PreferenceStoreError(f"cannot write {key}")
