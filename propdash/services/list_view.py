"""List view state controller.

One controller per mounted list page. It owns the query (search, page,
sort, filters), the committed and in-edit visible columns, and the last
good ``PagedResult``. Query changes schedule a fetch on the running event
loop, if there is one; column edits never fetch.

Every fetch takes a new request token. A response or error whose token is no
longer the latest is dropped, so a slow earlier request can't overwrite a
newer one. In-flight requests are never cancelled at the network layer.
"""

from __future__ import annotations

import asyncio
import logging

from propdash.config import settings
from propdash.errors import InvalidFilterError, InvalidSortError, ProviderError
from propdash.schemas.list_view import (
    ColumnSpec,
    ListQuery,
    ListStatus,
    ListViewState,
    PagedResult,
    SortDirection,
)
from propdash.services import list_ops
from propdash.services import preferences as preference_service
from propdash.services.entities import EntityDescriptor, ListMode
from propdash.services.paged_data import PagedDataProvider
from propdash.services.preference_store import PreferenceStore

logger = logging.getLogger(__name__)


def _coerce_direction(direction: SortDirection | str) -> SortDirection:
    try:
        return SortDirection(direction)
    except ValueError as exc:
        raise InvalidSortError(f"Invalid sort direction: {direction}") from exc


class ListViewController:
    def __init__(
        self,
        descriptor: EntityDescriptor,
        provider: PagedDataProvider,
        store: PreferenceStore,
        *,
        page_size: int | None = None,
        debounce_seconds: float | None = None,
    ):
        self.descriptor = descriptor
        self._provider = provider
        self._store = store
        self.page_size = page_size or descriptor.page_size or settings.default_page_size
        self.debounce_seconds = (
            settings.search_debounce_seconds if debounce_seconds is None else debounce_seconds
        )

        preference = preference_service.load_preference(store, descriptor)
        self._search_text = ""
        self._page = 1
        self._sort_key = preference.sort_key
        self._sort_direction = preference.sort_direction
        self._filters: dict[str, str] = {}
        self._visible_columns = list(preference.visible_columns)
        self._working_columns: list[str] | None = None

        self._status = ListStatus.idle
        self._error: str | None = None
        self._result: PagedResult | None = None

        self._request_token = 0
        self._debounce_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._closed = False

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def query(self) -> ListQuery:
        return ListQuery(
            search_text=self._search_text,
            page=self._page,
            page_size=self.page_size,
            sort_key=self._sort_key,
            sort_direction=self._sort_direction,
            filters=dict(self._filters),
        )

    @property
    def status(self) -> ListStatus:
        return self._status

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def result(self) -> PagedResult | None:
        return self._result

    @property
    def request_token(self) -> int:
        return self._request_token

    @property
    def visible_columns(self) -> list[str]:
        return list(self._visible_columns)

    @property
    def visible_column_specs(self) -> list[ColumnSpec]:
        visible = set(self._visible_columns)
        return [column for column in self.descriptor.columns if column.id in visible]

    @property
    def working_columns(self) -> list[str] | None:
        return None if self._working_columns is None else list(self._working_columns)

    @property
    def is_editing_columns(self) -> bool:
        return self._working_columns is not None

    @property
    def total_pages(self) -> int:
        return self._result.total_pages if self._result else 1

    @property
    def has_next_page(self) -> bool:
        return self._page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self._page > 1

    def snapshot(self) -> ListViewState:
        return ListViewState(
            entity_type=self.descriptor.entity_type,
            query=self.query,
            status=self._status,
            error=self._error,
            visible_columns=self.visible_columns,
            working_columns=self.working_columns,
            result=self._result,
        )

    # ------------------------------------------------------------------
    # Query mutations
    # ------------------------------------------------------------------

    def set_search_text(self, text: str) -> None:
        text = text or ""
        if text == self._search_text:
            return
        self._search_text = text
        self._page = 1
        # Typing is debounced; clearing the box refetches right away.
        self._schedule_fetch(self.debounce_seconds if text else 0)

    def clear_search(self) -> None:
        self.set_search_text("")

    def set_sort_key(self, key: str) -> None:
        if key not in self.descriptor.sort_keys:
            raise InvalidSortError(
                f"Invalid sort key for {self.descriptor.entity_type}: {key}",
                details={"allowed": self.descriptor.sort_keys},
            )
        self._sort_key = key
        self._page = 1
        preference_service.save_sort(self._store, self.descriptor, sort_key=key)
        self._schedule_fetch(0)

    def set_sort_direction(self, direction: SortDirection | str) -> None:
        self._sort_direction = _coerce_direction(direction)
        self._page = 1
        preference_service.save_sort(
            self._store, self.descriptor, sort_direction=self._sort_direction
        )
        self._schedule_fetch(0)

    def set_sort(self, key: str, direction: SortDirection | str) -> None:
        """Change key and direction together with a single fetch."""
        if key not in self.descriptor.sort_keys:
            raise InvalidSortError(
                f"Invalid sort key for {self.descriptor.entity_type}: {key}",
                details={"allowed": self.descriptor.sort_keys},
            )
        self._sort_direction = _coerce_direction(direction)
        self._sort_key = key
        self._page = 1
        preference_service.save_sort(
            self._store,
            self.descriptor,
            sort_key=key,
            sort_direction=self._sort_direction,
        )
        self._schedule_fetch(0)

    def set_page(self, page: int) -> int:
        """Move to ``page``, clamped into the known page range.

        Returns the page actually selected.
        """
        target = min(max(1, int(page)), self.total_pages)
        if target != self._page:
            self._page = target
            self._schedule_fetch(0)
        return target

    def next_page(self) -> int:
        return self.set_page(self._page + 1)

    def previous_page(self) -> int:
        return self.set_page(self._page - 1)

    def set_filter(self, name: str, value: str | None) -> None:
        if name not in self.descriptor.filter_keys:
            raise InvalidFilterError(
                f"Invalid filter for {self.descriptor.entity_type}: {name}",
                details={"allowed": sorted(self.descriptor.filter_keys)},
            )
        if value is None or value == "":
            if name not in self._filters:
                return
            self._filters.pop(name)
        else:
            if self._filters.get(name) == value:
                return
            self._filters[name] = value
        self._page = 1
        self._schedule_fetch(0)

    def clear_filters(self) -> None:
        if not self._filters:
            return
        self._filters.clear()
        self._page = 1
        self._schedule_fetch(0)

    # ------------------------------------------------------------------
    # Column visibility
    # ------------------------------------------------------------------

    def enter_column_edit_mode(self) -> None:
        self._working_columns = list(self._visible_columns)

    def toggle_column(self, column_id: str) -> None:
        if column_id == self.descriptor.locked_column:
            return
        if self.descriptor.column(column_id) is None:
            logger.debug(
                "Ignoring toggle of unknown %s column %s", self.descriptor.entity_type, column_id
            )
            return
        if self._working_columns is None:
            self.enter_column_edit_mode()
        working = set(self._working_columns or [])
        if column_id in working:
            working.remove(column_id)
        else:
            working.add(column_id)
        self._working_columns = preference_service.order_columns(self.descriptor, working)

    def commit_column_edits(self) -> None:
        if self._working_columns is None:
            return
        self._visible_columns = preference_service.sanitize_visible_columns(
            self.descriptor, self._working_columns
        )
        self._working_columns = None
        preference_service.save_visible_columns(
            self._store, self.descriptor, self._visible_columns
        )

    def cancel_column_edits(self) -> None:
        self._working_columns = None

    def reset_preferences(self) -> None:
        """Restore the entity's default columns and sort, persisting them."""
        preference = preference_service.reset_preference(self._store, self.descriptor)
        self._visible_columns = list(preference.visible_columns)
        self._working_columns = None
        sort_changed = (
            preference.sort_key != self._sort_key
            or preference.sort_direction != self._sort_direction
        )
        self._sort_key = preference.sort_key
        self._sort_direction = preference.sort_direction
        if sort_changed:
            self._page = 1
            self._schedule_fetch(0)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def dismiss_error(self) -> None:
        self._error = None

    async def mount(self) -> PagedResult | None:
        return await self.fetch()

    async def fetch(self) -> PagedResult | None:
        """Fetch the current query.

        Returns the materialised result, or ``None`` when the request failed
        or was superseded by a newer one.
        """
        self._request_token += 1
        token = self._request_token
        query = self.query
        self._status = ListStatus.loading
        try:
            result = await self._provider.fetch(self.descriptor.entity_type, query)
        except ProviderError as exc:
            if token != self._request_token:
                logger.debug(
                    "Dropping stale %s error (token %s, latest %s)",
                    self.descriptor.entity_type,
                    token,
                    self._request_token,
                )
                return None
            logger.warning("Fetching %s failed: %s", self.descriptor.entity_type, exc.message)
            self._fail(exc.message)
            return None
        except Exception as exc:
            if token != self._request_token:
                return None
            logger.exception("Unexpected error fetching %s", self.descriptor.entity_type)
            self._fail(f"Could not load {self.descriptor.entity_type}: {exc}")
            return None

        if token != self._request_token:
            logger.debug(
                "Dropping stale %s response (token %s, latest %s)",
                self.descriptor.entity_type,
                token,
                self._request_token,
            )
            return None

        result = self._localize(result, query)
        self._result = result
        self._error = None
        self._status = ListStatus.loaded
        if result.current_page != self._page and not self.descriptor.server_paginates:
            self._page = result.current_page
        return result

    def _fail(self, message: str) -> None:
        self._error = message
        self._status = ListStatus.errored

    def _localize(self, result: PagedResult, query: ListQuery) -> PagedResult:
        mode = self.descriptor.list_mode
        if mode == ListMode.server:
            return result
        sort_field = self.descriptor.record_field(query.sort_key)
        if mode == ListMode.client_sort:
            items = list_ops.sort_items(result.items, sort_field, query.sort_direction)
            return result.model_copy(update={"items": tuple(items)})
        search_fields = self.descriptor.search_fields
        items = list_ops.filter_items(result.items, query.search_text, search_fields)
        items = list_ops.sort_items(items, sort_field, query.sort_direction)
        return list_ops.paginate_items(items, query.page, query.page_size)

    def _schedule_fetch(self, delay: float) -> None:
        if self._closed:
            return
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside a loop the caller drives fetch() itself.
            logger.debug(
                "No running event loop, %s fetch not scheduled", self.descriptor.entity_type
            )
            self._debounce_task = None
            return
        self._debounce_task = loop.create_task(self._fetch_after(delay))

    async def _fetch_after(self, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        # The fetch runs as its own task so a later debounce can't cancel it.
        task = asyncio.get_running_loop().create_task(self.fetch())
        self._inflight.add(task)
        task.add_done_callback(self._on_fetch_done)

    def _on_fetch_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Unexpected error fetching %s",
                self.descriptor.entity_type,
                exc_info=exc,
            )

    async def settle(self) -> None:
        """Wait until no fetch is scheduled or in flight."""
        while True:
            pending = [
                task
                for task in (self._debounce_task, *self._inflight)
                if task is not None and not task.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        """Unmount: cancel pending timers and drop outstanding responses."""
        self._closed = True
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._request_token += 1
