"""
Delimited-text import and export for character records.

Import is a pure, synchronous transform over an already-read text buffer:
split rows, detect the delimiter from the header line, tokenize each row,
map headers onto canonical keys, coerce and assemble records. It never
raises; rows without a name are dropped and the caller only sees a shorter
result list.

Known limitation: rows are split on line breaks before tokenizing, so a
quoted field containing an embedded newline is broken across two rows.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import CharacterBase, NewCharacter
from .normalize import coerce_field, map_headers
from .rules import (
    CANONICAL_HEADERS,
    DEFAULT_EMPTY_FIELDS,
    DEFAULT_RELEASE,
    DEFAULT_TYPE,
    EXPORT_DELIMITER,
    NUMERIC_FIELDS,
    SEMICOLON_DELIMITER,
)
from .log_config import get_logger

log = get_logger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")


def split_rows(text: str) -> List[str]:
    """Split on CRLF/LF and drop whitespace-only lines."""
    return [line for line in _LINE_BREAK.split(text) if line.strip() != ""]


def detect_delimiter(header_line: str) -> str:
    if SEMICOLON_DELIMITER in header_line and EXPORT_DELIMITER not in header_line:
        return SEMICOLON_DELIMITER
    return EXPORT_DELIMITER


def tokenize_delimited_line(line: str, delimiter: str = EXPORT_DELIMITER) -> List[str]:
    """
    Split one row into stripped fields.

    Every double quote flips the in-quotes state and is not copied into the
    field; delimiters inside quotes are kept as content. Opening and closing
    quotes are not told apart, so an escaped quote ("") inside a quoted field
    disappears.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append("".join(current).strip())
    return fields


def assemble_record(keys: Sequence[str], values: Sequence[str]) -> Optional[NewCharacter]:
    """
    Build a new record from one tokenized row.

    Returns None when the row has no usable name.
    """
    fields: Dict[str, Any] = {}
    for index, key in enumerate(keys):
        if key == "id":
            continue
        raw = values[index] if index < len(values) else ""
        fields[key] = coerce_field(key, raw)

    name = fields.get("name")
    if not isinstance(name, str) or not name:
        return None

    if not fields.get("type"):
        fields["type"] = DEFAULT_TYPE
    if not fields.get("release"):
        fields["release"] = DEFAULT_RELEASE
    for key in DEFAULT_EMPTY_FIELDS:
        if not fields.get(key):
            fields[key] = ""

    for key in NUMERIC_FIELDS:
        value = fields.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            fields[key] = 0.0

    fields.setdefault("chinese", False)

    return NewCharacter(**{key: fields[key] for key in CANONICAL_HEADERS})


def parse_csv(text: str) -> List[NewCharacter]:
    """Parse a whole document into new records, in input order."""
    lines = split_rows(text)
    if len(lines) < 2:
        return []

    delimiter = detect_delimiter(lines[0])
    keys = map_headers(tokenize_delimited_line(lines[0], delimiter))

    results: List[NewCharacter] = []
    for line in lines[1:]:
        record = assemble_record(keys, tokenize_delimited_line(line, delimiter))
        if record is not None:
            results.append(record)

    dropped = len(lines) - 1 - len(results)
    log.debug(
        "Parsed %d record(s) from %d data row(s) (delimiter=%r, dropped=%d)",
        len(results), len(lines) - 1, delimiter, dropped,
    )
    return results


def format_number(value: float) -> str:
    """
    Render a number in plain decimal notation.

    Integral floats lose their trailing ".0" and exponents are never written,
    since the importer drops the "e" of "5e-05". Non-finite values become 0.
    """
    if not isinstance(value, float):
        return str(value)
    if not math.isfinite(value):
        return "0"
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def _render_cell(field: str, value: Any) -> str:
    if field == "chinese":
        return "TRUE" if value else "FALSE"
    if value is None:
        return ""
    if isinstance(value, str):
        return '"' + value.replace('"', '""') + '"'
    return format_number(value)


def serialize_csv(records: Iterable[CharacterBase]) -> str:
    """Render records as comma-delimited text under the canonical header."""
    rows = [EXPORT_DELIMITER.join(CANONICAL_HEADERS)]
    for record in records:
        data = record.model_dump()
        rows.append(
            EXPORT_DELIMITER.join(_render_cell(field, data.get(field)) for field in CANONICAL_HEADERS)
        )
    return "\n".join(rows)


__all__ = [
    "split_rows",
    "detect_delimiter",
    "tokenize_delimited_line",
    "assemble_record",
    "parse_csv",
    "serialize_csv",
    "format_number",
]
