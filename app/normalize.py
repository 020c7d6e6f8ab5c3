"""
Field reconciliation for character imports.

Responsibilities:
- decoding uploaded bytes to text (charset detection)
- header normalization onto canonical field keys
- per-field coercion (numbers, booleans, strings)
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from charset_normalizer import from_bytes

from .rules import BOOLEAN_FIELDS, NUMERIC_FIELDS, TRUTHY_VALUES


def decode_csv_bytes(raw: bytes) -> Tuple[str, Dict[str, Any]]:
    """
    Decode uploaded bytes to text.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - A UTF-8 BOM is consumed rather than kept as a leading character.
    - If decode fails, fall back to UTF-8, then UTF-8 with replacement characters.
    """
    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    if raw.startswith(b"\xef\xbb\xbf") and (decode_used.lower().replace("-", "_") in ("utf_8", "utf8")):
        decode_used = "utf-8-sig"

    decode_fallback = False

    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        try:
            text = raw.decode("utf-8-sig")
            decode_used = "utf-8-sig"
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="replace")
            decode_used = "utf-8"
        decode_fallback = True

    report = {
        "detected": detected,
        "decode_used": decode_used,
        "decode_fallback": decode_fallback,
    }
    return text, report


def strip_outer_quotes(value: str) -> str:
    """Drop one leading and one trailing double quote, independently."""
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value


def _has(*parts: str) -> Callable[[str], bool]:
    return lambda header: all(p in header for p in parts)


def _has_stat(stat: str, *markers: str) -> Callable[[str], bool]:
    return lambda header: stat in header and any(m in header for m in markers)


def _is(*names: str) -> Callable[[str], bool]:
    return lambda header: header in names


# Ordered, first match wins. Multipliers come before base stats because
# headers such as "str_mul_init" contain both markers.
HEADER_RULES: List[Tuple[Callable[[str], bool], str]] = [
    (_has("str", "mul"), "str_mul_in"),
    (_has("agi", "mul"), "agi_mul_in"),
    (_has("sta", "mul"), "sta_mul_in"),
    (_has_stat("str", "init", "base"), "str_init"),
    (_has_stat("agi", "init", "base"), "agi_init"),
    (_has_stat("sta", "init", "base"), "sta_init"),
    (_has("str", "bmv"), "bmv_str"),
    (_has("agi", "bmv"), "bmv_agi"),
    (_has("sta", "bmv"), "bmv_sta"),
    (_is("character", "outfit", "name"), "name"),
    (_is("element"), "release"),
]


def normalize_header(cell: str) -> str:
    return strip_outer_quotes(cell.strip()).lower()


def canonical_key(header: str) -> str:
    """
    Map a normalized header onto a canonical field key.

    Unmatched headers are returned verbatim, so "type", "chinese" and
    friends map onto themselves and unknown columns become extra keys.
    """
    for predicate, key in HEADER_RULES:
        if predicate(header):
            return key
    return header


def map_headers(cells: List[str]) -> List[str]:
    return [canonical_key(normalize_header(cell)) for cell in cells]


_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")


def coerce_number(value: Optional[str]) -> float:
    """
    Parse a loosely formatted number.

    Everything except digits, "-" and "." is dropped first ("+0.65x" -> 0.65),
    then the longest leading number is read. Anything unreadable or too
    large to be finite is 0.
    """
    if value is None:
        return 0.0
    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _LEADING_NUMBER.match(cleaned)
    if match is None:
        return 0.0
    number = float(match.group())
    return number if math.isfinite(number) else 0.0


def coerce_bool(value: Optional[str]) -> bool:
    if value is None:
        return False
    return str(value).strip().upper() in TRUTHY_VALUES


def coerce_text(value: Optional[str]) -> str:
    if value is None:
        return ""
    return strip_outer_quotes(str(value).strip())


def coerce_field(key: str, value: Optional[str]) -> Any:
    """Convert one raw cell into the typed value for its canonical key."""
    if key in NUMERIC_FIELDS:
        return coerce_number(value)
    if key in BOOLEAN_FIELDS:
        return coerce_bool(value)
    return coerce_text(value)
