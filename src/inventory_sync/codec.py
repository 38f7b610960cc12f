"""Delimited-text import and export of the inventory.

The file has a fixed seven column layout::

    SKU,TITLE,SIZE,IN STOCK,QUANTITY,LOCATION,IMAGE_URL

Rows sharing a SKU fold into one item, and a quoted SIZE cell may hold several
sizes separated by the delimiter, each becoming its own variant.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date
from pathlib import PurePath

from .errors import ParseError
from .records import new_identifier
from .schemas import InventoryItem, SizeVariant

logger = logging.getLogger(__name__)

HEADER = ("SKU", "TITLE", "SIZE", "IN STOCK", "QUANTITY", "LOCATION", "IMAGE_URL")
DELIMITER = ","
QUOTE = '"'
MIN_FIELDS = 6
CSV_SUFFIX = ".csv"
CSV_CONTENT_TYPE = "text/csv"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class ImportResult:
    items: list[InventoryItem]
    skipped_rows: list[int] = field(default_factory=list)

    @property
    def total_variants(self) -> int:
        return sum(len(item.variants) for item in self.items)


def split_row(line: str, delimiter: str = DELIMITER) -> list[str]:
    """Split ``line`` on ``delimiter`` outside double quotes; fields are trimmed.

    Quote characters only toggle the quoting state and are dropped.
    """

    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in line:
        if char == QUOTE:
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return fields


def parse_in_stock(value: str) -> bool:
    return value.strip().lower() in {"true", "1"}


def parse_quantity(value: str) -> int:
    match = _LEADING_INT.match(value)
    if match is None:
        return 0
    return max(0, int(match.group(1)))


def _row_variants(
    sizes: str,
    *,
    quantity: int,
    in_stock: bool,
    location: str,
    delimiter: str,
    id_factory: Callable[[], str],
) -> list[SizeVariant]:
    return [
        SizeVariant(
            id=id_factory(),
            size=size,
            quantity=quantity,
            in_stock=in_stock,
            location=location,
        )
        for size in (part.strip() for part in sizes.split(delimiter))
        if size
    ]


def parse_inventory(
    text: str,
    *,
    delimiter: str = DELIMITER,
    id_factory: Callable[[], str] = new_identifier,
) -> ImportResult:
    """Parse delimited text into items, merging rows that share a SKU.

    Raises :class:`ParseError` when there is no header plus data, or when no
    data row could be used. Unusable rows are skipped and reported by line
    number in :attr:`ImportResult.skipped_rows`.
    """

    lines = [(number, line) for number, line in enumerate(text.splitlines(), start=1) if line.strip()]
    if len(lines) < 2:
        raise ParseError("file is empty or malformed")

    merged: dict[str, InventoryItem] = {}
    skipped: list[int] = []
    for number, line in lines[1:]:
        fields = split_row(line, delimiter)
        if len(fields) < MIN_FIELDS:
            logger.warning("Skipping line %d: expected at least %d fields, got %d", number, MIN_FIELDS, len(fields))
            skipped.append(number)
            continue
        sku, title, sizes, in_stock, quantity, location = fields[:MIN_FIELDS]
        image_url = fields[6] if len(fields) > 6 else ""
        if not sku:
            logger.warning("Skipping line %d: empty SKU", number)
            skipped.append(number)
            continue
        variants = _row_variants(
            sizes,
            quantity=parse_quantity(quantity),
            in_stock=parse_in_stock(in_stock),
            location=location,
            delimiter=delimiter,
            id_factory=id_factory,
        )
        if not variants:
            logger.warning("Skipping line %d: no sizes", number)
            skipped.append(number)
            continue

        item = merged.get(sku)
        if item is not None:
            item.variants.extend(variants)
            continue
        if not title:
            logger.warning("Skipping line %d: empty title for new SKU %r", number, sku)
            skipped.append(number)
            continue
        merged[sku] = InventoryItem(
            id=id_factory(),
            sku=sku,
            title=title,
            image_url=image_url or None,
            variants=variants,
        )

    if not merged:
        raise ParseError("no valid data found", skipped_rows=skipped)
    return ImportResult(items=list(merged.values()), skipped_rows=skipped)


def _format_field(value: str, delimiter: str, quote: bool) -> str:
    if quote and delimiter in value:
        return f"{QUOTE}{value}{QUOTE}"
    return value


def serialize_inventory(
    items: Iterable[InventoryItem],
    *,
    delimiter: str = DELIMITER,
    quote_fields: bool = False,
) -> str:
    """Flatten items to one row per variant, preceded by the header row.

    Fields are written unquoted unless ``quote_fields`` is set.
    """

    rows = [delimiter.join(HEADER)]
    for item in items:
        for variant in item.variants:
            values = (
                item.sku,
                item.title,
                variant.size,
                "true" if variant.in_stock else "false",
                str(variant.quantity),
                variant.location,
                item.image_url or "",
            )
            rows.append(delimiter.join(_format_field(value, delimiter, quote_fields) for value in values))
    return "\n".join(rows)


def export_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"inventory_export_{today.isoformat()}{CSV_SUFFIX}"


def is_importable(filename: str | None, content_type: str | None = None) -> bool:
    if content_type and content_type.split(";")[0].strip().lower() == CSV_CONTENT_TYPE:
        return True
    return bool(filename) and PurePath(filename).suffix.lower() == CSV_SUFFIX


__all__ = [
    "HEADER",
    "DELIMITER",
    "ImportResult",
    "split_row",
    "parse_in_stock",
    "parse_quantity",
    "parse_inventory",
    "serialize_inventory",
    "export_filename",
    "is_importable",
]
