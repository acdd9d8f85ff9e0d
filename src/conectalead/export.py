"""
CSV export.

Fields are quoted when they contain a comma, quote or line break, so
names like "Bob, Jr." stay in one column.
"""

import csv
import io
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Sequence


def format_date(value: date | datetime | None) -> str:
    """dd/mm/YYYY, empty for missing dates."""
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def format_currency(value: float | None) -> str:
    """R$ 1.234,56"""
    amount = f"{value or 0:,.2f}"
    return "R$ " + amount.replace(",", "_").replace(".", ",").replace("_", ".")


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return format_date(value)
    return str(value)


def to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Header row first, then one line per row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(v) for v in row])
    return buffer.getvalue()


def write_csv(path: str | Path, content: str) -> Path:
    """Write CSV text with a BOM so spreadsheet apps detect UTF-8."""
    path = Path(path)
    path.write_text(content, encoding="utf-8-sig")
    return path
