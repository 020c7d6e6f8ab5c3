import pytest

from app.catalog import browse, classification_counts, filter_by_type, search, sort_by_tier
from app.models import Character
from app.rules import CHARACTER_TYPES


def _char(name, type_, release="Wind"):
    return Character(id=name.lower(), name=name, type=type_, release=release)


ROSTER = [
    _char("Pain", "Akatsuki", "Void"),
    _char("Rock Lee", "Grey", "Taijutsu"),
    _char("Tsunade", "Kages", "Healing"),
    _char("Shino", "Grey", "Tool"),
    _char("Oddball", "Custom Tier", "Fire"),
]


def test_search_matches_name_type_and_release_case_insensitively():
    assert [c.name for c in search(ROSTER, "rock")] == ["Rock Lee"]
    assert [c.name for c in search(ROSTER, "GREY")] == ["Rock Lee", "Shino"]
    assert [c.name for c in search(ROSTER, "heal")] == ["Tsunade"]
    assert len(search(ROSTER, "")) == len(ROSTER)


def test_filter_by_type_is_exact():
    assert [c.name for c in filter_by_type(ROSTER, "Grey")] == ["Rock Lee", "Shino"]
    assert filter_by_type(ROSTER, "grey") == []
    assert len(filter_by_type(ROSTER, None)) == len(ROSTER)


def test_sort_by_tier_orders_by_tier_list():
    asc = [c.name for c in sort_by_tier(ROSTER, "asc")]
    assert asc == ["Oddball", "Rock Lee", "Shino", "Pain", "Tsunade"]

    desc = [c.name for c in sort_by_tier(ROSTER, "desc")]
    assert desc == ["Tsunade", "Pain", "Rock Lee", "Shino", "Oddball"]


def test_sort_none_keeps_order_and_rejects_unknown_direction():
    assert sort_by_tier(ROSTER, None) == ROSTER
    with pytest.raises(ValueError):
        sort_by_tier(ROSTER, "sideways")


def test_classification_counts_include_every_tier():
    counts = classification_counts(ROSTER)
    assert list(counts) == CHARACTER_TYPES
    assert counts["Grey"] == 2
    assert counts["Mythics"] == 0
    assert "Custom Tier" not in counts


def test_browse_composes_search_filter_and_sort():
    result = browse(ROSTER, term="o", tier="Grey", direction="desc")
    assert [c.name for c in result] == ["Rock Lee", "Shino"]
