"""Listing intelligence: quality scores joined with ranking-service facts."""

import logging
from datetime import datetime

from server_intel.clients.battlemetrics.ranking_client import RankingClient
from server_intel.consts import SNAPSHOT_MAX_AGE_SECONDS
from server_intel.evaluators.trust import calculate_quality_score
from server_intel.models.common import _utc_now
from server_intel.models.model_quality import ServerIntel
from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import ServerFilters, ServerRecord
from server_intel.storage.base import ServerStorage

logger = logging.getLogger(__name__)


def build_server_intel(
    server: ServerRecord,
    snapshot: RankingSnapshot | None,
    now: datetime | None = None,
) -> ServerIntel:
    """Score a server and attach the snapshot facts shown next to it."""
    now = now or _utc_now()
    quality = calculate_quality_score(server, snapshot, now)

    cache_age_hours = None
    if snapshot is not None:
        cache_age_hours = int(snapshot.summary_age(now) // 3600)

    return ServerIntel(
        address=server.address,
        name=server.name,
        map=server.map,
        player_count=server.player_count,
        max_players=server.max_players,
        quality=quality,
        ranking_rank=snapshot.rank if snapshot else None,
        ranking_status=snapshot.status if snapshot else None,
        ranking_id=snapshot.ranking_id if snapshot else None,
        ranking_name=snapshot.server_name if snapshot else None,
        cache_age_hours=cache_age_hours,
    )


def filter_listings(
    listings: list[ServerIntel],
    min_quality_score: int | None = None,
    hide_fraud: bool = False,
    verified_only: bool = False,
) -> list[ServerIntel]:
    """Apply quality filters to scored listings, preserving order."""
    result = listings
    if min_quality_score is not None:
        result = [i for i in result if i.quality.score >= min_quality_score]
    if hide_fraud:
        result = [i for i in result if not i.quality.fraud_flags]
    if verified_only:
        result = [i for i in result if i.quality.verified]
    return result


class ServerIntelService:
    """Scores servers on read from storage plus cached snapshots."""

    def __init__(
        self,
        storage: ServerStorage,
        ranking_client: RankingClient,
        max_age_seconds: float = SNAPSHOT_MAX_AGE_SECONDS,
    ):
        self.storage = storage
        self.ranking_client = ranking_client
        self.max_age_seconds = max_age_seconds

    async def get_intel(self, address: str) -> ServerIntel | None:
        """Score one server, refreshing its snapshot first if it is stale.

        Returns:
            ServerIntel, or None if the server is unknown.
        """
        server = await self.storage.get_server(address)
        if server is None:
            return None

        now = _utc_now()
        snapshot = await self.storage.get_ranking_snapshot(address)
        if snapshot is None or snapshot.summary_age(now) > self.max_age_seconds:
            fresh = await self.ranking_client.search_by_address(address)
            if fresh is not None:
                snapshot = await self.storage.upsert_ranking_snapshot(
                    fresh.model_copy(update={"last_detail_refresh": now})
                )
            else:
                logger.debug(f"No fresh ranking data for {address}, scoring with cached snapshot")

        return build_server_intel(server, snapshot, now)

    async def list_intel(
        self,
        filters: ServerFilters | None = None,
        min_quality_score: int | None = None,
        hide_fraud: bool = False,
        verified_only: bool = False,
        limit: int | None = None,
    ) -> list[ServerIntel]:
        """Score every stored server matching `filters` from cached snapshots only."""
        now = _utc_now()
        servers = await self.storage.get_servers(filters)
        snapshots = {s.server_address: s for s in await self.storage.get_all_ranking_snapshots()}

        listings = [build_server_intel(s, snapshots.get(s.address), now) for s in servers]
        listings = filter_listings(listings, min_quality_score, hide_fraud, verified_only)
        return listings[:limit] if limit is not None else listings
