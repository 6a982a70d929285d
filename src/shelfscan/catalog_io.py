"""Catalog file import (CSV/TSV master lists and JSON backups)."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Any

import structlog

from shelfscan.core.models import ProductRecord

logger = structlog.get_logger()

CODE_HEADERS = ("barcode", "gtin", "ean", "upc", "code", "primarycode")
NAME_HEADERS = ("name", "productname", "description", "product", "displayname")
SECONDARY_HEADERS = ("rms", "rmscode", "rms_code", "sku", "secondarycode")


class CatalogFormatError(ValueError):
    """Raised when a catalog file cannot be interpreted."""

    pass


def _header_key(header: str) -> str:
    return "".join(header.split()).strip("'\"").lower()


def _find_column(headers: list[str], aliases: tuple[str, ...]) -> int:
    for position, header in enumerate(headers):
        if header in aliases:
            return position
    return -1


def parse_catalog_csv(text: str) -> list[ProductRecord]:
    """Parse a delimited master list.

    The first line is the header; tabs in it select TSV, otherwise commas.
    Rows without a code are skipped.

    Raises:
        CatalogFormatError: If the header has no code column
    """
    lines = text.strip().splitlines()
    if len(lines) < 2:
        return []

    delimiter = "\t" if "\t" in lines[0] else ","
    rows = list(csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter))
    headers = [_header_key(h) for h in rows[0]]

    code_col = _find_column(headers, CODE_HEADERS)
    if code_col == -1:
        raise CatalogFormatError(
            f"No barcode column found. Expected one of: {', '.join(CODE_HEADERS)}"
        )
    name_col = _find_column(headers, NAME_HEADERS)
    secondary_col = _find_column(headers, SECONDARY_HEADERS)

    def cell(row: list[str], col: int) -> str:
        return row[col].strip() if 0 <= col < len(row) else ""

    records = []
    for row in rows[1:]:
        code = cell(row, code_col)
        if not code:
            continue
        records.append(
            ProductRecord(
                primary_code=code,
                display_name=cell(row, name_col),
                secondary_code=cell(row, secondary_col) or None,
            )
        )
    return records


def _record_from_mapping(item: dict[str, Any]) -> ProductRecord | None:
    fields = {_header_key(str(k)): v for k, v in item.items()}

    def first(aliases: tuple[str, ...]) -> str:
        for alias in aliases:
            value = fields.get(alias)
            if value not in (None, ""):
                return str(value).strip()
        return ""

    code = first(CODE_HEADERS)
    if not code:
        return None
    return ProductRecord(
        primary_code=code,
        display_name=first(NAME_HEADERS),
        secondary_code=first(SECONDARY_HEADERS) or None,
    )


def parse_catalog_json(text: str) -> list[ProductRecord]:
    """Parse a JSON list of products, or a backup object with a ``master`` list.

    Raises:
        CatalogFormatError: If the document is not valid JSON or has no list
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CatalogFormatError(f"Invalid JSON catalog: {e}") from e

    if isinstance(data, dict):
        data = data.get("master", data.get("products"))
    if not isinstance(data, list):
        raise CatalogFormatError("JSON catalog must be a list of products")

    records = [_record_from_mapping(item) for item in data if isinstance(item, dict)]
    return [r for r in records if r is not None]


def load_catalog_file(path: str | Path) -> list[ProductRecord]:
    """Load a catalog from a CSV, TSV or JSON file.

    Args:
        path: File to read; ``.json`` files are parsed as JSON

    Returns:
        ProductRecords in file order

    Raises:
        CatalogFormatError: If the file cannot be interpreted
        OSError: If the file cannot be read
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8-sig")
    if path.suffix.lower() == ".json":
        records = parse_catalog_json(text)
    else:
        records = parse_catalog_csv(text)

    logger.info("catalog_file_loaded", path=str(path), products=len(records))
    return records
