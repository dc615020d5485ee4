"""Keyword tables used for map, perspective, region and mod classification.

Fixed vocabularies only. Matching logic lives in `inference` and
`mod_classifier`.
"""

from typing import Final

# Canonical map name -> lowercase name fragments that identify it
MAP_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    "Chernarus": ("chernarus", "chernarusplus", "chernarus+", "cherno"),
    "Livonia": ("livonia", "enoch"),
    "Namalsk": ("namalsk",),
    "Deer Isle": ("deer isle", "deerisle"),
    "Esseker": ("esseker",),
    "Takistan": ("takistan",),
    "Banov": ("banov",),
    "Rostow": ("rostow",),
    "Sakhal": ("sakhal",),
    "Valning": ("valning",),
}

PERSPECTIVE_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    "1PP": ("1pp", "first person", "fpp"),
    "3PP": ("3pp", "third person", "tpp"),
}

# Tags and title fragments that indicate a map/terrain mod
MAP_MOD_TAGS: Final[tuple[str, ...]] = (
    "map",
    "maps",
    "terrain",
    "island",
    "chernarus",
    "livonia",
    "namalsk",
    "sakhal",
    "esseker",
    "banov",
    "takistan",
    "deer isle",
    "valning",
    "expansion",
)

# Descriptions are noisy free text: only these exact words count
MAP_DESCRIPTION_WORDS: Final[frozenset[str]] = frozenset({"map", "terrain", "island"})

# Category -> tag vocabulary, checked in this order
MOD_CATEGORY_TAGS: Final[dict[str, frozenset[str]]] = {
    "Weapons": frozenset({"weapon", "weapons", "gun", "guns", "firearms"}),
    "Vehicles": frozenset({"vehicle", "vehicles", "car", "cars", "helicopter"}),
    "Gear": frozenset({"clothing", "gear", "equipment"}),
    "Building": frozenset({"building", "base", "basebuilding"}),
}

# ISO 3166 alpha-2 -> region
COUNTRY_REGIONS: Final[dict[str, str]] = {
    # Europe
    "GB": "EU", "UK": "EU", "IE": "EU", "FR": "EU", "DE": "EU", "NL": "EU", "BE": "EU",
    "LU": "EU", "ES": "EU", "PT": "EU", "IT": "EU", "CH": "EU", "AT": "EU", "DK": "EU",
    "NO": "EU", "SE": "EU", "FI": "EU", "IS": "EU", "PL": "EU", "CZ": "EU", "SK": "EU",
    "HU": "EU", "RO": "EU", "BG": "EU", "GR": "EU", "HR": "EU", "SI": "EU", "RS": "EU",
    "BA": "EU", "LT": "EU", "LV": "EU", "EE": "EU", "UA": "EU", "BY": "EU", "RU": "EU",
    "MD": "EU", "TR": "EU",
    # North America (east/west decided by longitude when known)
    "US": "NA-EAST", "CA": "NA-EAST", "MX": "NA-WEST",
    # South America
    "BR": "SA", "AR": "SA", "CL": "SA", "CO": "SA", "PE": "SA",
    # Asia
    "JP": "ASIA", "KR": "ASIA", "CN": "ASIA", "HK": "ASIA", "TW": "ASIA", "SG": "ASIA",
    "IN": "ASIA", "TH": "ASIA", "VN": "ASIA", "MY": "ASIA", "ID": "ASIA", "PH": "ASIA",
    "AE": "ASIA", "IL": "ASIA", "KZ": "ASIA",
    # Oceania
    "AU": "OCEANIA", "NZ": "OCEANIA",
}

NORTH_AMERICA_SPLIT_COUNTRIES: Final[frozenset[str]] = frozenset({"US", "CA"})
NA_WEST_LONGITUDE: Final[float] = -100.0

# First IPv4 octet ranges (inclusive) used when no country is known
OCTET_REGIONS: Final[tuple[tuple[int, int, str], ...]] = (
    (2, 62, "EU"),
    (63, 127, "NA-EAST"),
    (128, 191, "NA-WEST"),
    (192, 223, "ASIA"),
)
