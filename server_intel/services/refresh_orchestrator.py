"""Cache/refresh orchestrator: keeps an in-memory mirror of the server set fresh.

One refresh cycle runs through these phases:
    IDLE -> DISCOVERING -> REFRESHING_SUBSET -> CLEANING_STALE
         -> REDISCOVER_IF_LOW -> ENRICHING -> IDLE

At most one cycle runs at a time. A cycle requested while another is in
flight is dropped, not queued.
"""

import asyncio
import contextlib
import logging
import time
from datetime import datetime
from typing import Any

from server_intel.categorization.inference import (
    canonical_map,
    coalesce_prefer_existing,
    infer_map,
    infer_perspective,
    is_stale_listing,
    is_unknown,
    region_from_country,
)
from server_intel.clients.battlemetrics.ranking_client import RankingClient
from server_intel.clients.steam.live_query import LiveQueryClient
from server_intel.consts import MAP_BACKFILL_LIMIT
from server_intel.models.common import _utc_now
from server_intel.models.model_enrichment import (
    RefreshCycleResult,
    RefreshSettings,
    RefreshState,
    RefreshStatus,
)
from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import AnalyticsEvent, Mod, ServerRecord, ServerSummary
from server_intel.services.backoff import ExponentialBackoff
from server_intel.services.mod_enrichment import ModEnrichmentService
from server_intel.storage.base import ServerStorage

logger = logging.getLogger(__name__)


def materialize_mods(snapshot: RankingSnapshot) -> list[Mod]:
    """Build a mod list from the workshop ids and names carried by a snapshot."""
    names = snapshot.details.mod_names
    return [
        Mod(
            id=workshop_id,
            name=names[index] if index < len(names) and names[index] else f"Mod {workshop_id}",
            workshop_id=workshop_id,
            size=0,
            required=True,
            installed=False,
        )
        for index, workshop_id in enumerate(snapshot.details.workshop_ids)
    ]


class CacheOrchestrator:
    """Owns the in-memory server mirror and the periodic refresh cycle."""

    def __init__(
        self,
        storage: ServerStorage,
        ranking_client: RankingClient,
        live_query: LiveQueryClient | None = None,
        mod_enrichment: ModEnrichmentService | None = None,
        settings: RefreshSettings | None = None,
    ):
        """Initialize CacheOrchestrator.

        Args:
            storage: Storage backend for records, snapshots and events.
            ranking_client: Ranking-service client (discovery and snapshots).
            live_query: Optional live query client. When absent, details are
                refreshed from the ranking service only.
            mod_enrichment: Optional workshop enrichment for materialized mods.
            settings: Tunables. Defaults to RefreshSettings().
        """
        self.storage = storage
        self.ranking_client = ranking_client
        self.live_query = live_query
        self.mod_enrichment = mod_enrichment
        self.settings = settings or RefreshSettings()

        self._servers: list[ServerRecord] = []
        self._is_refreshing = False
        self._state = RefreshState.IDLE
        self._last_refresh_time: datetime | None = None
        self._task: asyncio.Task | None = None

    # === LIFECYCLE ===

    async def initialize(self, start_background: bool = True) -> None:
        """Load the mirror, discover servers, and optionally start the refresh loop."""
        logger.info("Initializing server cache...")
        await self.load_from_storage()
        self._state = RefreshState.DISCOVERING
        try:
            await self.discover(self.settings.discovery_max_servers)
        finally:
            self._state = RefreshState.IDLE
        if start_background:
            self.start()
        logger.info(f"Cache initialized with {len(self._servers)} servers")

    def start(self) -> None:
        """Start the background refresh loop (idempotent)."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Background refresh started (every {self.settings.interval_seconds:.0f}s)")

    async def stop(self) -> None:
        """Stop the background refresh loop."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Background refresh stopped")

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.interval_seconds)
            try:
                await self.refresh_cycle()
            except Exception:
                # Keep the loop alive; the next tick retries
                logger.exception("Refresh cycle failed")

    # === MIRROR ===

    async def load_from_storage(self) -> list[ServerRecord]:
        """Reload the mirror, retrying with exponential backoff plus jitter.

        Exhausting the retries leaves an empty mirror (degraded mode) rather
        than raising.
        """
        backoff = ExponentialBackoff(
            initial_delay=self.settings.load_retry_initial_delay,
            max_delay=self.settings.load_retry_max_delay,
        )
        attempts = self.settings.load_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                self._servers = await self.storage.get_servers()
                logger.debug(f"Loaded {len(self._servers)} servers from storage")
                return self._servers
            except Exception as e:
                if attempt == attempts:
                    logger.error(f"Failed to load servers after {attempts} attempts, running with empty cache: {e}")
                    break
                delay = backoff.next_delay()
                logger.warning(f"Failed to load servers (attempt {attempt}/{attempts}), retrying in {delay:.1f}s: {e}")
                await asyncio.sleep(delay)

        self._servers = []
        return self._servers

    def get_cached_servers(self) -> list[ServerRecord]:
        return list(self._servers)

    def get_status(self) -> RefreshStatus:
        return RefreshStatus(
            is_refreshing=self._is_refreshing,
            state=self._state,
            last_refresh_time=self._last_refresh_time,
            server_count=len(self._servers),
        )

    # === DISCOVERING ===

    async def _upsert_discovered(self, summary: ServerSummary) -> bool:
        """Create or update one discovered server. Returns True if created."""
        existing = await self.storage.get_server(summary.address)
        inferred_map = summary.map or infer_map(summary.name)

        if existing is None:
            await self.storage.create_server(
                ServerRecord(
                    address=summary.address,
                    name=summary.name,
                    map=inferred_map,
                    perspective=infer_perspective(summary.name),
                    region=summary.region,
                    version=summary.version,
                    player_count=summary.player_count,
                    max_players=summary.max_players,
                    password_protected=summary.password_protected,
                )
            )
            return True

        await self.storage.update_server(
            summary.address,
            {
                "name": summary.name,
                "map": coalesce_prefer_existing(existing.map, inferred_map),
                "perspective": infer_perspective(summary.name, existing.perspective),
                "player_count": summary.player_count,
                "max_players": summary.max_players,
            },
        )
        return False

    async def discover(self, max_servers: int | None = None) -> int:
        """Discover servers from the ranking service and upsert them.

        Returns:
            Number of servers created or updated.
        """
        max_servers = max_servers or self.settings.discovery_max_servers
        logger.info(f"Discovering up to {max_servers} servers...")
        summaries = await self.ranking_client.discover_all(max_servers)
        if not summaries:
            logger.info("No servers discovered")
            return 0

        created = updated = 0
        for summary in summaries:
            try:
                if await self._upsert_discovered(summary):
                    created += 1
                else:
                    updated += 1
            except Exception as e:
                logger.warning(f"Failed to store discovered server {summary.address}: {e}")

        await self.load_from_storage()
        logger.info(f"Discovery added {created} new servers, updated {updated} existing")
        return created + updated

    # === REFRESHING_SUBSET ===

    async def _fetch_updates(self, server: ServerRecord) -> tuple[dict[str, Any], int | None] | None:
        """Fresh field values for a server: live query first, ranking service second."""
        if self.live_query is not None:
            live = await self.live_query.query(server.address)
            if live is not None:
                updates = {
                    "name": live.name,
                    "map": coalesce_prefer_existing(server.map, canonical_map(live.map, live.name)),
                    "perspective": coalesce_prefer_existing(
                        server.perspective, live.perspective.value if live.perspective else "Both"
                    ),
                    "region": coalesce_prefer_existing(server.region, live.region or "Other"),
                    "version": live.version or server.version,
                    "player_count": live.player_count,
                    "max_players": live.max_players,
                    "ping": live.ping,
                    "password_protected": live.password_protected,
                    "verified": live.verified,
                    "last_seen": _utc_now(),
                }
                if live.mods:
                    updates["mods"] = live.mods
                return updates, live.ping

        snapshot = await self.ranking_client.search_by_address(server.address)
        if snapshot is None:
            return None

        details = snapshot.details
        updates = {
            "name": snapshot.server_name or server.name,
            "map": coalesce_prefer_existing(server.map, canonical_map(details.map, snapshot.server_name or "")),
            "player_count": details.players if details.players is not None else server.player_count,
            "max_players": snapshot.max_player_count or details.max_players or server.max_players,
            "version": details.version or server.version,
            "password_protected": bool(details.private),
            "last_seen": _utc_now(),
        }
        if snapshot.country:
            updates["region"] = region_from_country(snapshot.country)
        return updates, None

    async def _refresh_one(self, server: ServerRecord) -> bool:
        try:
            fetched = await self._fetch_updates(server)
            if fetched is None:
                return False
            updates, response_time_ms = fetched
            await self.storage.update_server(server.address, updates)
            await self.storage.add_analytics_event(
                AnalyticsEvent(
                    server_address=server.address,
                    player_count=updates.get("player_count"),
                    queue=server.queue,
                    ping=updates.get("ping"),
                    response_time_ms=response_time_ms,
                    is_online=True,
                )
            )
            return True
        except Exception as e:
            logger.warning(f"Failed to refresh {server.address}: {e}")
            return False

    async def refresh_subset(self) -> tuple[int, int]:
        """Refresh the most-played servers in small concurrent batches.

        Returns:
            (refreshed, attempted)
        """
        targets = sorted(self._servers, key=lambda s: s.player_count, reverse=True)
        targets = targets[: self.settings.refresh_top_n]
        batch_size = self.settings.refresh_batch_size

        refreshed = 0
        for start in range(0, len(targets), batch_size):
            batch = targets[start : start + batch_size]
            results = await asyncio.gather(*(self._refresh_one(s) for s in batch))
            refreshed += sum(results)
            if start + batch_size < len(targets):
                await asyncio.sleep(self.settings.refresh_batch_delay)

        await self.load_from_storage()
        return refreshed, len(targets)

    # === CLEANING_STALE ===

    async def cleanup_stale(self) -> int:
        """Delete records whose name carries a relocation marker."""
        removed = 0
        for server in list(self._servers):
            if not is_stale_listing(server.name):
                continue
            try:
                if await self.storage.delete_server(server.address):
                    removed += 1
            except Exception as e:
                logger.warning(f"Failed to delete stale server {server.address}: {e}")

        if removed:
            logger.info(f"Cleaned up {removed} relocated servers")
            await self.load_from_storage()
        return removed

    # === ENRICHING ===

    def _is_fresh(self, snapshot: RankingSnapshot | None, now: datetime) -> bool:
        if snapshot is None:
            return False
        return (
            snapshot.summary_age(now) < self.settings.snapshot_max_age_seconds
            and snapshot.detail_age(now) < self.settings.detail_max_age_seconds
        )

    async def _enrich_one(self, server: ServerRecord, now: datetime) -> bool:
        fresh = await self.ranking_client.search_by_address(server.address)
        if fresh is None:
            return False

        fresh = fresh.model_copy(update={"last_detail_refresh": now})
        await self.storage.upsert_ranking_snapshot(fresh)

        mods = materialize_mods(fresh)
        if mods:
            updates: dict[str, Any] = {"mods": mods}
            if self.mod_enrichment is not None:
                with_mods = server.model_copy(update={"mods": mods})
                updates.update(await self.mod_enrichment.enrich_server(with_mods))
            await self.storage.update_server(server.address, updates)
        return True

    async def enrich_subset(self, servers: list[ServerRecord] | None = None) -> int:
        """Refresh ranking snapshots for the most-played servers.

        Servers fresh on both staleness clocks are skipped. Each external
        fetch is followed by a fixed delay.

        Returns:
            Number of servers enriched.
        """
        if servers is None:
            servers = sorted(self._servers, key=lambda s: s.player_count, reverse=True)
            servers = servers[: self.settings.enrich_top_n]
        if not servers:
            return 0

        enriched = skipped = 0
        for server in servers:
            now = _utc_now()
            try:
                existing = await self.storage.get_ranking_snapshot(server.address)
                if self._is_fresh(existing, now):
                    skipped += 1
                    continue
                if await self._enrich_one(server, now):
                    enriched += 1
            except Exception as e:
                logger.warning(f"Failed to enrich {server.address}: {e}")
            await asyncio.sleep(self.settings.enrich_request_delay)

        logger.info(f"Enriched {enriched}/{len(servers)} servers ({skipped} fresh, skipped)")
        return enriched

    # === MAP BACKFILL ===

    async def backfill_unknown_maps(self, limit: int = MAP_BACKFILL_LIMIT) -> int:
        """Fill in maps for records whose map is unknown, from ranking snapshots.

        Returns:
            Number of records updated.
        """
        servers = await self.storage.get_servers()
        unknown = [s for s in servers if is_unknown(s.map)][:limit]
        logger.info(f"Backfilling maps for {len(unknown)} servers")

        updated = 0
        for server in unknown:
            snapshot = await self.storage.get_ranking_snapshot(server.address)
            if snapshot is None or not snapshot.details.map:
                snapshot = await self.ranking_client.search_by_address(server.address)
                if snapshot is not None:
                    await self.storage.upsert_ranking_snapshot(snapshot)
                await asyncio.sleep(self.settings.enrich_request_delay)
            if snapshot is None or not snapshot.details.map:
                continue

            map_name = canonical_map(snapshot.details.map, server.name)
            await self.storage.update_server(server.address, {"map": map_name})
            logger.debug(f"{server.address}: map set to {map_name}")
            updated += 1

        await self.load_from_storage()
        logger.info(f"Backfilled maps for {updated}/{len(unknown)} servers")
        return updated

    # === CYCLE ===

    async def refresh_cycle(self) -> RefreshCycleResult | None:
        """Run one full refresh cycle.

        Returns:
            Cycle counters, or None if a cycle was already running.
        """
        if self._is_refreshing:
            logger.info("Refresh already in progress, skipping")
            return None

        self._is_refreshing = True
        started = time.monotonic()
        result = RefreshCycleResult()
        try:
            async with self.storage.batch():
                if not self._servers:
                    self._state = RefreshState.DISCOVERING
                    await self.discover(self.settings.discovery_max_servers)

                self._state = RefreshState.REFRESHING_SUBSET
                result.refreshed, result.attempted = await self.refresh_subset()

                self._state = RefreshState.CLEANING_STALE
                result.removed_stale = await self.cleanup_stale()

                self._state = RefreshState.REDISCOVER_IF_LOW
                if len(self._servers) < self.settings.population_floor:
                    logger.info(
                        f"Server count ({len(self._servers)}) below minimum "
                        f"({self.settings.population_floor}), rediscovering..."
                    )
                    await self.discover(self.settings.discovery_max_servers)
                    result.rediscovered = True

                self._state = RefreshState.ENRICHING
                result.enriched = await self.enrich_subset()

            self._last_refresh_time = _utc_now()
            result.duration_seconds = time.monotonic() - started
            logger.info(
                f"Refresh complete: {result.refreshed}/{result.attempted} servers "
                f"in {result.duration_seconds:.1f}s"
            )
            return result
        finally:
            self._state = RefreshState.IDLE
            self._is_refreshing = False
