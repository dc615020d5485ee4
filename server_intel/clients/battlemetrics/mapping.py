"""Adapters from ranking-service (BattleMetrics) JSON:API payloads to internal models.

External field names stop here. Everything downstream sees only
RankingSnapshot, RankingDetails and ServerSummary.
"""

import logging
from datetime import datetime
from typing import Any

from server_intel.categorization.inference import canonical_map, resolve_region
from server_intel.models.common import _utc_now
from server_intel.models.model_ranking import RankingDetails, RankingSnapshot
from server_intel.models.model_server import ServerSummary

logger = logging.getLogger(__name__)


def _parse_datetime(value: Any) -> datetime | None:
    """Parse ISO-8601 timestamps as sent by the service ("...Z" suffix)."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable timestamp: {value!r}")
        return None


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _longitude(attrs: dict[str, Any]) -> float | None:
    # location is [longitude, latitude]
    location = attrs.get("location") or []
    if len(location) >= 1 and isinstance(location[0], int | float):
        return float(location[0])
    return None


def _city(attrs: dict[str, Any]) -> str | None:
    details = attrs.get("details") or {}
    city = details.get("city") or attrs.get("city")
    if city:
        return str(city)
    # No city name in the payload: fall back to the coordinates string
    location = attrs.get("location") or []
    if location:
        return ", ".join(str(part) for part in location[:2])
    return None


def payload_address(server: dict[str, Any]) -> str | None:
    """Build host:port for a server resource, or None if unaddressable."""
    attrs = server.get("attributes") or {}
    ip = attrs.get("ip")
    port = attrs.get("port")
    if ip and port:
        return f"{ip}:{port}"
    address = attrs.get("address")
    if address and ":" in str(address):
        return str(address)
    return None


def _resolve_included(
    server: dict[str, Any],
    included: list[dict[str, Any]],
    relationship: str,
) -> str | None:
    """Name of a side-loaded resource referenced by `relationship`, if any."""
    rel = ((server.get("relationships") or {}).get(relationship) or {}).get("data")
    if not isinstance(rel, dict):
        return None
    for item in included:
        if item.get("id") == rel.get("id") and item.get("type") == rel.get("type"):
            attrs = item.get("attributes") or {}
            return attrs.get("name") or attrs.get("nickname")
    return None


def to_details(server: dict[str, Any], included: list[dict[str, Any]] | None = None) -> RankingDetails:
    """Extract the free-form detail blob from a server resource."""
    attrs = server.get("attributes") or {}
    extra = attrs.get("details") or {}
    included = included or []

    return RankingDetails(
        created_at=_parse_datetime(attrs.get("createdAt")),
        updated_at=_parse_datetime(attrs.get("updatedAt")),
        players=_as_int(attrs.get("players")),
        max_players=_as_int(attrs.get("maxPlayers")),
        map=extra.get("map"),
        version=extra.get("version"),
        private=attrs.get("private"),
        query_port=_as_int(attrs.get("portQuery")),
        game_port=_as_int(attrs.get("port")),
        query_status=attrs.get("queryStatus"),
        mod_names=[str(n) for n in extra.get("modNames") or []],
        workshop_ids=[str(i) for i in extra.get("modIds") or []],
        organization_name=_resolve_included(server, included, "organization"),
        owner_name=_resolve_included(server, included, "owner"),
    )


def to_snapshot(
    server: dict[str, Any],
    server_address: str,
    included: list[dict[str, Any]] | None = None,
    with_details: bool = False,
) -> RankingSnapshot:
    """Map one server resource to a RankingSnapshot keyed by `server_address`.

    Args:
        server: JSON:API server resource ({"id", "attributes", "relationships"}).
        server_address: Identity of the local record this snapshot belongs to.
        included: Side-loaded resources for relationship resolution.
        with_details: Stamp `last_detail_refresh` (full detail fetch).
    """
    attrs = server.get("attributes") or {}
    now = _utc_now()
    rank = _as_int(attrs.get("rank"))

    return RankingSnapshot(
        server_address=server_address,
        ranking_id=str(server.get("id")) if server.get("id") is not None else None,
        server_name=attrs.get("name"),
        rank=rank if rank and rank > 0 else None,
        status=attrs.get("status"),
        country=attrs.get("country"),
        city=_city(attrs),
        max_player_count=_as_int(attrs.get("maxPlayers")),
        details=to_details(server, included),
        cached_at=now,
        last_detail_refresh=now if with_details else None,
    )


def to_summary(server: dict[str, Any]) -> ServerSummary | None:
    """Map one server resource to a lightweight listing, or None if unaddressable."""
    address = payload_address(server)
    if address is None:
        return None

    attrs = server.get("attributes") or {}
    extra = attrs.get("details") or {}
    name = attrs.get("name") or ""
    country = attrs.get("country")
    map_name = extra.get("map")

    return ServerSummary(
        address=address,
        name=name,
        ranking_id=str(server.get("id")) if server.get("id") is not None else None,
        map=canonical_map(map_name, name),
        player_count=_as_int(attrs.get("players")) or 0,
        max_players=_as_int(attrs.get("maxPlayers")) or 0,
        rank=_as_int(attrs.get("rank")),
        status=attrs.get("status"),
        country=country,
        region=resolve_region(address, country, _longitude(attrs)),
        version=extra.get("version"),
        password_protected=bool(attrs.get("private")),
    )
