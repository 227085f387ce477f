"""Local search, sort and pagination for entities the backend doesn't order."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from propdash.schemas.list_view import PagedResult, SortDirection


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _parse_datetime(value: str) -> datetime | None:
    text = value.strip()
    if len(text) < 10 or text[4] != "-" or text[7] != "-":
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return _naive_utc(parsed)


def _sort_value(value: Any) -> tuple[int, Any]:
    """Map a record value to a comparable key.

    Numbers (including numeric strings) sort numerically, ISO dates
    chronologically, everything else as case-folded text. The leading rank
    keeps mixed types from being compared with each other.
    """
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
        if number.is_finite():
            return (0, number)
    if isinstance(value, datetime):
        return (1, _naive_utc(value))
    if isinstance(value, date):
        return (1, datetime(value.year, value.month, value.day))
    text = str(value)
    try:
        number = Decimal(text.replace(",", ""))
    except InvalidOperation:
        number = None
    if number is not None and number.is_finite():
        return (0, number)
    parsed = _parse_datetime(text)
    if parsed is not None:
        return (1, parsed)
    return (2, text.casefold())


def sort_items(
    items: Iterable[dict[str, Any]],
    key: str,
    direction: SortDirection | str = SortDirection.asc,
) -> list[dict[str, Any]]:
    """Stable sort by ``key``; records missing the value always go last."""
    records = list(items)
    present = [item for item in records if item.get(key) not in (None, "")]
    missing = [item for item in records if item.get(key) in (None, "")]
    descending = SortDirection(direction) == SortDirection.desc
    present.sort(key=lambda item: _sort_value(item.get(key)), reverse=descending)
    return present + missing


def filter_items(
    items: Iterable[dict[str, Any]],
    search_text: str,
    fields: Sequence[str],
) -> list[dict[str, Any]]:
    term = (search_text or "").strip().casefold()
    records = list(items)
    if not term or not fields:
        return records
    return [
        item
        for item in records
        if any(
            item.get(field) is not None and term in str(item.get(field)).casefold()
            for field in fields
        )
    ]


def paginate_items(
    items: Sequence[dict[str, Any]],
    page: int,
    page_size: int,
) -> PagedResult:
    total = len(items)
    total_pages = max(1, math.ceil(total / page_size)) if page_size > 0 else 1
    current = min(max(1, page), total_pages)
    start = (current - 1) * page_size
    return PagedResult(
        items=tuple(items[start : start + page_size]),
        total_items=total,
        total_pages=total_pages,
        current_page=current,
        per_page=page_size,
    )
