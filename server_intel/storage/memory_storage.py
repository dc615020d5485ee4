"""In-memory storage backend guarded by an asyncio lock."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import AnalyticsEvent, ServerFilters, ServerRecord
from server_intel.storage.base import ServerStorage, apply_filters

logger = logging.getLogger(__name__)


class InMemoryStorage(ServerStorage):
    """Dict-backed storage.

    Records are copied on the way in and out so callers never share mutable
    state with the store. Subclasses hook `_load`, `_persist_servers`,
    `_persist_rankings` and `_persist_event` to add durability.

    Inside `batch()` the server and snapshot hooks run once when the
    outermost block exits instead of after every write.
    """

    def __init__(self):
        self._servers: dict[str, ServerRecord] = {}
        self._rankings: dict[str, RankingSnapshot] = {}
        self._events: list[AnalyticsEvent] = []
        self._lock = asyncio.Lock()
        self._loaded = False
        self._batch_depth = 0
        self._dirty: set[str] = set()

    # === PERSISTENCE HOOKS ===

    def _load(self) -> None:
        """Populate the dicts from a backing store (no-op in memory)."""

    def _persist_servers(self) -> None:
        """Write servers to a backing store (no-op in memory)."""

    def _persist_rankings(self) -> None:
        """Write snapshots to a backing store (no-op in memory)."""

    def _persist_event(self, event: AnalyticsEvent) -> None:
        """Append an event to a backing store (no-op in memory)."""

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._load()
            self._loaded = True

    def _servers_changed(self) -> None:
        if self._batch_depth:
            self._dirty.add("servers")
        else:
            self._persist_servers()

    def _rankings_changed(self) -> None:
        if self._batch_depth:
            self._dirty.add("rankings")
        else:
            self._persist_rankings()

    @asynccontextmanager
    async def batch(self) -> AsyncIterator["InMemoryStorage"]:
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                await self.flush()

    async def flush(self) -> None:
        """Persist anything deferred by `batch()`."""
        async with self._lock:
            dirty, self._dirty = self._dirty, set()
            if "servers" in dirty:
                self._persist_servers()
            if "rankings" in dirty:
                self._persist_rankings()
        if dirty:
            logger.debug(f"Flushed deferred writes: {sorted(dirty)}")

    # === SERVERS ===

    async def get_servers(self, filters: ServerFilters | None = None) -> list[ServerRecord]:
        async with self._lock:
            self._ensure_loaded()
            servers = [s.model_copy(deep=True) for s in self._servers.values()]
        return apply_filters(servers, filters)

    async def get_server(self, address: str) -> ServerRecord | None:
        async with self._lock:
            self._ensure_loaded()
            server = self._servers.get(address)
            return server.model_copy(deep=True) if server else None

    async def create_server(self, server: ServerRecord) -> ServerRecord:
        async with self._lock:
            self._ensure_loaded()
            self._servers[server.address] = server.model_copy(deep=True)
            self._servers_changed()
        logger.debug(f"Created server {server.address}")
        return server.model_copy(deep=True)

    async def update_server(self, address: str, updates: dict[str, Any]) -> ServerRecord | None:
        async with self._lock:
            self._ensure_loaded()
            current = self._servers.get(address)
            if current is None:
                return None

            # Identity never changes
            changes = {k: v for k, v in updates.items() if k != "address"}
            merged = ServerRecord.model_validate({**current.model_dump(), **changes, "address": address})
            self._servers[address] = merged
            self._servers_changed()
            return merged.model_copy(deep=True)

    async def delete_server(self, address: str) -> bool:
        async with self._lock:
            self._ensure_loaded()
            if self._servers.pop(address, None) is None:
                return False
            self._servers_changed()
        logger.debug(f"Deleted server {address}")
        return True

    # === RANKING SNAPSHOTS ===

    async def get_all_ranking_snapshots(self) -> list[RankingSnapshot]:
        async with self._lock:
            self._ensure_loaded()
            return [s.model_copy(deep=True) for s in self._rankings.values()]

    async def get_ranking_snapshot(self, server_address: str) -> RankingSnapshot | None:
        async with self._lock:
            self._ensure_loaded()
            snapshot = self._rankings.get(server_address)
            return snapshot.model_copy(deep=True) if snapshot else None

    async def upsert_ranking_snapshot(self, snapshot: RankingSnapshot) -> RankingSnapshot:
        async with self._lock:
            self._ensure_loaded()
            self._rankings[snapshot.server_address] = snapshot.model_copy(deep=True)
            self._rankings_changed()
        return snapshot.model_copy(deep=True)

    # === ANALYTICS ===

    async def add_analytics_event(self, event: AnalyticsEvent) -> None:
        async with self._lock:
            self._ensure_loaded()
            self._events.append(event)
            self._persist_event(event)

    @property
    def analytics_events(self) -> list[AnalyticsEvent]:
        """Events recorded in this process (oldest first)."""
        return list(self._events)
