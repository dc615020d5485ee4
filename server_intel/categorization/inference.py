"""Region, perspective and map inference for server records.

All functions are pure and total. Perspective and map inference share the
preserve-existing-if-valid rule through `coalesce_prefer_existing`.
"""

import re
from functools import lru_cache

from server_intel.categorization.keyword_taxonomy import (
    COUNTRY_REGIONS,
    MAP_KEYWORDS,
    NA_WEST_LONGITUDE,
    NORTH_AMERICA_SPLIT_COUNTRIES,
    OCTET_REGIONS,
    PERSPECTIVE_KEYWORDS,
)
from server_intel.consts import STALE_LISTING_MARKERS, UNKNOWN_MAP
from server_intel.models.model_server import Perspective, Region


def is_unknown(value: str | None, sentinel: str = UNKNOWN_MAP) -> bool:
    """True when `value` is missing, blank or the sentinel."""
    if value is None:
        return True
    text = value.value if isinstance(value, Perspective) else str(value)
    return not text.strip() or text == sentinel


def coalesce_prefer_existing(
    existing: str | None,
    inferred: str,
    sentinel: str = UNKNOWN_MAP,
) -> str:
    """Keep an existing value unless it is missing, blank or the sentinel.

    Args:
        existing: Value already stored on the record.
        inferred: Freshly inferred value.
        sentinel: Placeholder that marks "not known yet".

    Returns:
        `existing` when it is trustworthy, otherwise `inferred`.
    """
    if is_unknown(existing, sentinel):
        return inferred
    return existing.value if isinstance(existing, Perspective) else str(existing)


@lru_cache(maxsize=256)
def _token_pattern(keyword: str) -> re.Pattern[str]:
    # Letters may not touch the keyword on either side; digits and symbols may
    return re.compile(rf"(?<![a-z]){re.escape(keyword)}(?![a-z])")


def contains_token(text: str, keyword: str) -> bool:
    """Case-insensitive whole-token search for `keyword` in `text`."""
    return _token_pattern(keyword.lower()).search(text.lower()) is not None


def infer_perspective(name: str, existing: str | None = None) -> str:
    """Infer play perspective from a server name.

    Returns the existing value when valid, else the first perspective whose
    keyword appears in the name, else "Both".
    """
    for perspective, keywords in PERSPECTIVE_KEYWORDS.items():
        if any(contains_token(name or "", kw) for kw in keywords):
            return coalesce_prefer_existing(existing, perspective)
    return coalesce_prefer_existing(existing, Perspective.BOTH.value)


def infer_map(name: str, existing: str | None = None) -> str:
    """Infer the map from a server name, preserving a valid existing map."""
    for map_name, keywords in MAP_KEYWORDS.items():
        if any(contains_token(name or "", kw) for kw in keywords):
            return coalesce_prefer_existing(existing, map_name)
    return coalesce_prefer_existing(existing, UNKNOWN_MAP)


def infer_region(address: str) -> str:
    """Bucket an address into a region by its first IPv4 octet.

    Fallback only: prefer `region_from_country` when a country is known.
    """
    host = (address or "").rsplit(":", 1)[0]
    parts = host.split(".")
    if len(parts) != 4:
        return Region.OTHER.value
    try:
        first_octet = int(parts[0])
    except ValueError:
        return Region.OTHER.value

    for low, high, region in OCTET_REGIONS:
        if low <= first_octet <= high:
            return region
    return Region.OTHER.value


def region_from_country(country: str | None, longitude: float | None = None) -> str:
    """Map an ISO country code to a region, defaulting to "Other".

    US and Canada are split east/west when a longitude is available.
    """
    if not country:
        return Region.OTHER.value
    code = country.strip().upper()
    region = COUNTRY_REGIONS.get(code, Region.OTHER.value)
    if code in NORTH_AMERICA_SPLIT_COUNTRIES and longitude is not None and longitude < NA_WEST_LONGITUDE:
        return Region.NA_WEST.value
    return region


def resolve_region(address: str, country: str | None = None, longitude: float | None = None) -> str:
    """Country table first, octet buckets as fallback."""
    if country:
        return region_from_country(country, longitude)
    return infer_region(address)


def is_stale_listing(name: str | None) -> bool:
    """True if a listing name carries a relocation marker (MOVED, MIGRATED...)."""
    upper = (name or "").upper()
    return any(marker in upper for marker in STALE_LISTING_MARKERS)


def canonical_map(raw: str | None, name: str = "") -> str:
    """Canonical map name for a raw map string ("chernarusplus" -> "Chernarus").

    The reported map string wins over map names mentioned in the server
    name; the name is only consulted when the raw string is unrecognised.
    Unrecognised names are kept as-is; an empty one becomes "Unknown".
    """
    inferred = infer_map(raw or "")
    if is_unknown(inferred):
        inferred = infer_map(name)
    return coalesce_prefer_existing(inferred, raw or UNKNOWN_MAP)
