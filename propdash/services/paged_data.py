"""Paged-data providers backing the list views.

The REST backend is a Laravel API: list endpoints take ``page``,
``per_page``, ``search``, ``sort_by`` and ``sort_direction`` and answer with a
paginator body. Every failure is surfaced as ``ProviderError``; there is no
automatic retry.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

import httpx

from propdash.config import Settings, settings as default_settings
from propdash.errors import ProviderError
from propdash.schemas.list_view import ListQuery, PagedResult
from propdash.services.entities import EntityRegistry

logger = logging.getLogger(__name__)

_JSON_FRAGMENT = re.compile(r"\{[\s\S]*\}|\[[\s\S]*\]")


class PagedDataProvider(Protocol):
    async def fetch(self, entity_type: str, query: ListQuery) -> PagedResult: ...


def _decode_body(response: httpx.Response) -> Any:
    text = response.text
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        pass
    # Some PHP backends print warnings ahead of the JSON document.
    match = _JSON_FRAGMENT.search(text)
    if match:
        try:
            return json.loads(match.group(0))
        except ValueError:
            pass
    raise ProviderError("Invalid JSON response from server", status_code=response.status_code)


def _error_from_response(response: httpx.Response, body: Any) -> ProviderError:
    message = f"Request failed with status {response.status_code}"
    validation_errors = None
    if isinstance(body, dict):
        if isinstance(body.get("message"), str) and body["message"].strip():
            message = body["message"].strip()
        if isinstance(body.get("errors"), dict):
            validation_errors = body["errors"]
    return ProviderError(
        message,
        status_code=response.status_code,
        validation_errors=validation_errors,
    )


class HttpPagedDataProvider:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        settings = settings or default_settings
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token = token if token is not None else settings.api_token
        self.timeout = timeout if timeout is not None else settings.api_timeout_seconds
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(self, url: str, params: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(
                url, params=params, headers=self._headers(), timeout=self.timeout
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, params=params, headers=self._headers())

    async def fetch(self, entity_type: str, query: ListQuery) -> PagedResult:
        descriptor = EntityRegistry.get(entity_type)
        params = query.to_params(
            include_sort=descriptor.server_sorts,
            include_paging=descriptor.server_paginates,
        )
        url = f"{self.base_url}{descriptor.endpoint}"
        try:
            response = await self._get(url, params)
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"Request timeout after {int(self.timeout * 1000)}ms"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Could not reach {descriptor.endpoint}: {exc}") from exc

        body = _decode_body(response)
        if response.status_code >= 400:
            error = _error_from_response(response, body)
            logger.warning(
                "Fetching %s failed with status %s: %s",
                entity_type,
                response.status_code,
                error.message,
            )
            raise error
        try:
            return PagedResult.from_payload(body, per_page=query.page_size)
        except ValueError as exc:
            raise ProviderError(
                f"Unexpected response shape from {descriptor.endpoint}",
                status_code=response.status_code,
            ) from exc
