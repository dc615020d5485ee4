"""Abstract base class for server storage backends.

The pipeline only talks to storage through this interface. Every method is
async and must be safe to call concurrently from several batch workers.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import (
    AnalyticsEvent,
    Perspective,
    ServerFilters,
    ServerRecord,
)

# Mod-count buckets understood by ServerFilters.mod_count
MOD_COUNT_BUCKETS = ("vanilla", "1-10", "10+")


def _matches_mod_bucket(mod_count: int, bucket: str) -> bool:
    if bucket == "vanilla":
        return mod_count == 0
    if bucket == "1-10":
        return 1 <= mod_count <= 10
    if bucket == "10+":
        return mod_count > 10
    return True


def apply_filters(servers: list[ServerRecord], filters: ServerFilters | None) -> list[ServerRecord]:
    """Filter and order servers the way every backend must.

    Args:
        servers: Candidate records.
        filters: Listing filters, or None for no filtering.

    Returns:
        Matching records ordered by live player count, descending.
    """
    result = list(servers)
    if filters is not None:
        if filters.map:
            wanted = filters.map.lower()
            result = [s for s in result if (s.map or "").lower() == wanted]
        if filters.min_players is not None:
            result = [s for s in result if s.player_count >= filters.min_players]
        if filters.max_ping is not None:
            result = [s for s in result if s.ping is not None and s.ping <= filters.max_ping]
        if filters.perspective and filters.perspective != Perspective.BOTH:
            result = [s for s in result if s.perspective == filters.perspective]
        if filters.regions:
            result = [s for s in result if s.region in filters.regions]
        if not filters.show_full:
            result = [s for s in result if s.max_players == 0 or s.player_count < s.max_players]
        if not filters.show_password_protected:
            result = [s for s in result if not s.password_protected]
        if filters.mod_count:
            result = [s for s in result if _matches_mod_bucket(len(s.mods), filters.mod_count)]

    return sorted(result, key=lambda s: s.player_count, reverse=True)


class ServerStorage(ABC):
    """Abstract base class for server/snapshot storage implementations."""

    @abstractmethod
    async def get_servers(self, filters: ServerFilters | None = None) -> list[ServerRecord]:
        """List servers matching `filters`, most players first."""
        ...

    @abstractmethod
    async def get_server(self, address: str) -> ServerRecord | None:
        ...

    @abstractmethod
    async def create_server(self, server: ServerRecord) -> ServerRecord:
        """Create a record. An existing record with the same address is replaced."""
        ...

    @abstractmethod
    async def update_server(self, address: str, updates: dict[str, Any]) -> ServerRecord | None:
        """Overwrite the given fields of an existing record.

        Args:
            address: Record identity.
            updates: Field values to overwrite. An "address" key is ignored.

        Returns:
            Updated record, or None if no record exists for `address`.
        """
        ...

    @abstractmethod
    async def delete_server(self, address: str) -> bool:
        """Delete a record. Returns False if it did not exist."""
        ...

    @abstractmethod
    async def get_all_ranking_snapshots(self) -> list[RankingSnapshot]:
        ...

    @abstractmethod
    async def get_ranking_snapshot(self, server_address: str) -> RankingSnapshot | None:
        ...

    @abstractmethod
    async def upsert_ranking_snapshot(self, snapshot: RankingSnapshot) -> RankingSnapshot:
        """Insert or replace the one snapshot for `snapshot.server_address`."""
        ...

    @abstractmethod
    async def add_analytics_event(self, event: AnalyticsEvent) -> None:
        ...

    @asynccontextmanager
    async def batch(self) -> AsyncIterator["ServerStorage"]:
        """Group many writes. Backends may defer persistence until the block exits."""
        yield self
