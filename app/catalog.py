"""Search, classification filter and tier sort over the record grid."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .models import Character
from .rules import CHARACTER_TYPES

SORT_DIRECTIONS = ("asc", "desc")


def search(records: Sequence[Character], term: Optional[str]) -> List[Character]:
    """Case-insensitive substring match on name, type or release."""
    if not term:
        return list(records)
    needle = term.lower()
    return [
        r for r in records
        if needle in (r.name or "").lower()
        or needle in (r.type or "").lower()
        or needle in (r.release or "").lower()
    ]


def filter_by_type(records: Sequence[Character], tier: Optional[str]) -> List[Character]:
    if not tier:
        return list(records)
    return [r for r in records if r.type == tier]


def _tier_rank(record: Character) -> int:
    # Unknown tiers rank before every known one.
    try:
        return CHARACTER_TYPES.index(record.type)
    except ValueError:
        return -1


def sort_by_tier(records: Sequence[Character], direction: Optional[str]) -> List[Character]:
    if direction is None:
        return list(records)
    if direction not in SORT_DIRECTIONS:
        raise ValueError(f"sort direction must be one of {SORT_DIRECTIONS}, got {direction!r}")
    return sorted(records, key=_tier_rank, reverse=(direction == "desc"))


def classification_counts(records: Sequence[Character]) -> Dict[str, int]:
    counts = {tier: 0 for tier in CHARACTER_TYPES}
    for r in records:
        if r.type in counts:
            counts[r.type] += 1
    return counts


def browse(
    records: Sequence[Character],
    term: Optional[str] = None,
    tier: Optional[str] = None,
    direction: Optional[str] = None,
) -> List[Character]:
    return sort_by_tier(filter_by_type(search(records, term), tier), direction)
