"""
C# code generation for the game engine's `List<Outfit>` table.

The fragment always starts with the built-in Ggio Vega entry at id 0;
generated entries are numbered from 1 in the order given.
"""

from __future__ import annotations

import re
from typing import List, Sequence

from .csv_io import format_number
from .models import CharacterBase

DEFAULT_BASE_STAT = 10
DEFAULT_THRESHOLD = 15
DEFAULT_RECORD = "0/0/0"

SEED_ENTRY = """new Outfit
{
    id = 0,
    record = new int[3] { 1, 2, 1 },
    name = "Ggio Vega",
    image = Resources.GgioVega,
    pimage = Resources.PGgioVega,
    type = "Grey",
    release = "Wind",
    str_init = 13,
    agi_init = 22,
    sta_init = 13,
    str_mul_init = 0.65,
    agi_mul_init = 1.1,
    sta_mul_init = 0.65,
    bmv_str = 17,
    bmv_agi = 10,
    bmv_sta = 14
},"""

OUTFIT_TEMPLATE = """new Outfit
{{
    id = {id},
    record = new int[3] {{ {record} }},
    name = "{name}",
    image = Resources.{resource},
    pimage = Resources.P{resource},
    type = "{type}",
    release = "{release}",
    str_init = {str_init},
    agi_init = {agi_init},
    sta_init = {sta_init},
    str_mul_init = {str_mul},
    agi_mul_init = {agi_mul},
    sta_mul_init = {sta_mul},
    bmv_str = {bmv_str},
    bmv_agi = {bmv_agi},
    bmv_sta = {bmv_sta}
}},"""

_WHITESPACE = re.compile(r"\s+")


def resource_name(name: str) -> str:
    """Resource identifier for a character: its name without whitespace."""
    return _WHITESPACE.sub("", name)


def _record_triplet(record: str) -> str:
    return ", ".join(part.strip() for part in (record or DEFAULT_RECORD).split("/"))


def _or_default(value: float, default: int) -> str:
    return format_number(value) if value else str(default)


def _multiplier(value: float) -> str:
    return format_number(round(float(value or 0), 2))


def render_outfit(record: CharacterBase, outfit_id: int) -> str:
    return OUTFIT_TEMPLATE.format(
        id=outfit_id,
        record=_record_triplet(record.record),
        name=record.name,
        resource=resource_name(record.name),
        type=record.type,
        release=record.release or "None",
        str_init=_or_default(record.str_init, DEFAULT_BASE_STAT),
        agi_init=_or_default(record.agi_init, DEFAULT_BASE_STAT),
        sta_init=_or_default(record.sta_init, DEFAULT_BASE_STAT),
        str_mul=_multiplier(record.str_mul_in),
        agi_mul=_multiplier(record.agi_mul_in),
        sta_mul=_multiplier(record.sta_mul_in),
        bmv_str=_or_default(record.bmv_str, DEFAULT_THRESHOLD),
        bmv_agi=_or_default(record.bmv_agi, DEFAULT_THRESHOLD),
        bmv_sta=_or_default(record.bmv_sta, DEFAULT_THRESHOLD),
    )


def render_outfits(records: Sequence[CharacterBase]) -> str:
    entries: List[str] = [SEED_ENTRY]
    entries.extend(render_outfit(record, index) for index, record in enumerate(records, start=1))
    return "\n".join(entries)
