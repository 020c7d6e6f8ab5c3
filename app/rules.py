"""
Catalog rules.

Canonical column order, field groups and the enumerations ingestion
defaults to. Ingestion does not enforce the enumerations.
"""

CANONICAL_HEADERS = [
    "record", "name", "image", "pimage", "type", "release",
    "str_init", "agi_init", "sta_init",
    "str_mul_in", "agi_mul_in", "sta_mul_in",
    "bmv_str", "bmv_agi", "bmv_sta",
    "chinese",
]

NUMERIC_FIELDS = [
    "str_init", "agi_init", "sta_init",
    "str_mul_in", "agi_mul_in", "sta_mul_in",
    "bmv_str", "bmv_agi", "bmv_sta",
]

BOOLEAN_FIELDS = ["chinese"]

TRUTHY_VALUES = frozenset({"TRUE", "1", "T", "YES"})

CHARACTER_TYPES = [
    "Grey",
    "Blue",
    "Orange",
    "Shippuden",
    "Bankai",
    "Resurrected",
    "Espadas",
    "S-Rank",
    "Legends",
    "Limited Legends",
    "Lieutenants",
    "Akatsuki",
    "Heroes of the Villages",
    "Captains",
    "Kages",
    "Yonkos & Mugiwaras",
    "Mythics",
]

RELEASE_TYPES = [
    "Wind", "Fire", "Earth", "Lightning", "Tool", "Illusion",
    "Healing", "Sealing", "Taijutsu", "Water", "Void",
]

DEFAULT_TYPE = CHARACTER_TYPES[0]
DEFAULT_RELEASE = RELEASE_TYPES[0]

# Filled with "" when absent or empty after coercion.
DEFAULT_EMPTY_FIELDS = ["image", "pimage", "record"]

EXPORT_DELIMITER = ","
SEMICOLON_DELIMITER = ";"
