"""CSV export of list view rows, limited to the visible columns."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from propdash.services.entities import EntityDescriptor
from propdash.services.preferences import order_columns


def _coerce_delimiter(value: str | None) -> str:
    token = (value or ",").strip().lower()
    mapping = {",": ",", ";": ";", "\\t": "\t", "tab": "\t", "|": "|"}
    if value == "\t":
        return "\t"
    return mapping.get(token, ",")


def _serialize_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def export_csv(
    descriptor: EntityDescriptor,
    items: Iterable[dict[str, Any]],
    visible_columns: Iterable[str],
    *,
    delimiter: str = ",",
    include_headers: bool = True,
) -> tuple[str, int]:
    """Render ``items`` as CSV text; returns the content and the row count.

    Columns come out in declaration order whatever order ``visible_columns``
    is in; headers use the column titles.
    """
    column_ids = order_columns(descriptor, visible_columns)
    if descriptor.locked_column not in column_ids:
        column_ids.insert(0, descriptor.locked_column)
    output = io.StringIO()
    writer = csv.writer(output, delimiter=_coerce_delimiter(delimiter))

    if include_headers:
        writer.writerow([descriptor.column(column_id).title for column_id in column_ids])
    count = 0
    for item in items:
        writer.writerow(
            [
                _serialize_value(item.get(descriptor.record_field(column_id)))
                for column_id in column_ids
            ]
        )
        count += 1
    return output.getvalue(), count


def export_filename(descriptor: EntityDescriptor, row_count: int) -> str:
    stamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    return f"{descriptor.entity_type}_export_{stamp}_{row_count}.csv"
