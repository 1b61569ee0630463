"""CSV export, the inverse of the import parser.

Columns follow the import template order, so an exported file can be edited
and re-imported as-is.
"""
import csv
import io
from collections.abc import Iterable
from datetime import date
from typing import Any

from app.imports.fields import MULTI_VALUE_DELIMITER
from app.imports.rules import get_spec
from app.imports.store import ImportStore
from app.schemas.imports import ImportRow, ImportType


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return MULTI_VALUE_DELIMITER.join(str(item) for item in value)
    return str(value)


def export_rows(entity_type: str | ImportType, rows: Iterable[ImportRow]) -> str:
    """Serialize rows to CSV text with a header line.

    Cells containing the delimiter, a quote, CR or LF are quoted with inner
    quotes doubled (``csv.QUOTE_MINIMAL``).
    """
    columns = get_spec(entity_type).columns
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow([format_cell(getattr(row, column)) for column in columns])
    return buffer.getvalue()


async def export_entities(
    store: ImportStore,
    entity_type: str | ImportType,
    date_from: date | None = None,
    date_to: date | None = None,
) -> str:
    spec = get_spec(entity_type)
    rows = await store.load_rows(spec.type, date_from=date_from, date_to=date_to)
    return export_rows(spec.type, rows)
