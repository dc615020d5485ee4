"""Ranking-service (BattleMetrics) client.

Every call is best-effort: transport errors, non-2xx responses, malformed
payloads and a missing API key all collapse to None or an empty collection.
Callers test for absence, never catch exceptions from this client.
"""

import asyncio
import logging
import os
from typing import Any

import httpx

from server_intel.categorization.inference import is_stale_listing
from server_intel.clients.battlemetrics.mapping import (
    payload_address,
    to_snapshot,
    to_summary,
)
from server_intel.consts import (
    BATTLEMETRICS_API_KEY_ENV,
    BATTLEMETRICS_BASE_URL,
    BATTLEMETRICS_GAME,
    BATTLEMETRICS_TIMEOUT,
    DISCOVERY_MAX_PAGES,
    DISCOVERY_PAGE_DELAY,
    DISCOVERY_PAGE_SIZE,
    SEARCH_MAX_RESULTS,
)
from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import ServerRecord, ServerSummary

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class RankingClient:
    """Async client for the ranking/uptime service.

    Features:
    - Bearer auth from BATTLEMETRICS_API_KEY (or constructor argument)
    - Fail-open when the key is missing: one warning, then None everywhere
    - Cursor-following discovery with dedup and stale-listing filtering
    - Concurrent batch lookups that keep successes only
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = BATTLEMETRICS_BASE_URL,
        game: str = BATTLEMETRICS_GAME,
        timeout: float = BATTLEMETRICS_TIMEOUT,
        page_delay: float = DISCOVERY_PAGE_DELAY,
    ):
        """Initialize ranking client.

        Args:
            api_key: Bearer token. None = read from env (BATTLEMETRICS_API_KEY).
            base_url: Service root URL.
            game: Game filter applied to every search.
            timeout: Request timeout in seconds.
            page_delay: Seconds to sleep between discovery page fetches.
        """
        self.api_key = api_key if api_key is not None else os.getenv(BATTLEMETRICS_API_KEY_ENV, "")
        self.base_url = base_url
        self.game = game
        self.timeout = timeout
        self.page_delay = page_delay

        self._client: httpx.AsyncClient | None = None
        self._warned_missing_key = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "Accept": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """GET an endpoint (or absolute "next" link) and return parsed JSON.

        Returns:
            JSON body as a dict, or None for any failure (no data and error
            are deliberately the same thing here).
        """
        if not self.has_credentials:
            if not self._warned_missing_key:
                logger.warning(f"{BATTLEMETRICS_API_KEY_ENV} is not configured, ranking lookups disabled")
                self._warned_missing_key = True
            return None

        client = await self._get_client()
        try:
            response = await client.get(endpoint, params=params)
        except httpx.HTTPError as e:
            logger.warning(f"Ranking service request failed for {endpoint}: {e}")
            return None

        if not response.is_success:
            logger.warning(f"Ranking service returned {response.status_code} for {endpoint}")
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Ranking service returned invalid JSON for {endpoint}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Unexpected ranking payload type for {endpoint}: {type(data).__name__}")
            return None
        return data

    def _search_params(self, search: str, page_size: int) -> dict[str, Any]:
        return {
            "filter[game]": self.game,
            "filter[search]": search,
            "page[size]": min(page_size, MAX_PAGE_SIZE),
        }

    async def search_by_address(self, address: str) -> RankingSnapshot | None:
        """Look up one server by host:port.

        Returns:
            Snapshot keyed by `address`, or None when nothing matches.
        """
        data = await self._request("/servers", self._search_params(address, 1))
        results = (data or {}).get("data") or []
        if not results:
            logger.debug(f"No ranking entry found for {address}")
            return None

        # Prefer the exact address match when the search is fuzzy
        server = next((s for s in results if payload_address(s) == address), results[0])
        return to_snapshot(server, address)

    async def get_by_id(self, ranking_id: str) -> RankingSnapshot | None:
        """Fetch one server by its ranking-service id."""
        data = await self._request(f"/servers/{ranking_id}")
        server = (data or {}).get("data")
        if not isinstance(server, dict):
            logger.debug(f"No ranking entry found for id {ranking_id}")
            return None

        address = payload_address(server)
        if address is None:
            logger.debug(f"Ranking entry {ranking_id} has no usable address")
            return None
        return to_snapshot(server, address)

    async def get_details_with_relationships(
        self,
        ranking_id: str,
        server_address: str | None = None,
    ) -> RankingSnapshot | None:
        """Fetch one server with side-loaded organization/owner resources.

        Args:
            ranking_id: Ranking-service id.
            server_address: Local identity to key the snapshot by. Defaults to
                the address reported by the service.

        Returns:
            Snapshot with details refreshed, or None.
        """
        data = await self._request(f"/servers/{ranking_id}", {"include": "organization,owner"})
        server = (data or {}).get("data")
        if not isinstance(server, dict):
            return None

        address = server_address or payload_address(server)
        if address is None:
            return None
        return to_snapshot(server, address, included=data.get("included") or [], with_details=True)

    async def search_by_name(self, query: str, max_results: int = SEARCH_MAX_RESULTS) -> list[ServerSummary]:
        """Full-text search, capped and sorted by player count descending."""
        if not query.strip():
            return []

        data = await self._request("/servers", self._search_params(query.strip(), max_results))
        summaries = [s for s in map(to_summary, (data or {}).get("data") or []) if s is not None]
        summaries.sort(key=lambda s: s.player_count, reverse=True)
        return summaries[:max_results]

    async def discover_all(
        self,
        max_servers: int,
        max_pages: int = DISCOVERY_MAX_PAGES,
        page_size: int = DISCOVERY_PAGE_SIZE,
    ) -> list[ServerSummary]:
        """Discover servers by following the service's "next" cursor.

        Stops at `max_servers`, an exhausted cursor, or `max_pages`. Addresses
        are unique across pages and relocated listings are skipped.

        Args:
            max_servers: Cap on returned servers.
            max_pages: Cap on page fetches.
            page_size: Servers requested per page.

        Returns:
            Discovered server summaries in service order.
        """
        discovered: list[ServerSummary] = []
        seen: set[str] = set()
        skipped_stale = 0

        endpoint: str | None = "/servers"
        params: dict[str, Any] | None = {
            "filter[game]": self.game,
            "page[size]": min(page_size, MAX_PAGE_SIZE),
            "sort": "rank",
        }

        for page in range(max_pages):
            if endpoint is None or len(discovered) >= max_servers:
                break
            if page > 0:
                await asyncio.sleep(self.page_delay)

            data = await self._request(endpoint, params)
            if data is None:
                break

            for resource in data.get("data") or []:
                summary = to_summary(resource)
                if summary is None or summary.address in seen:
                    continue
                if is_stale_listing(summary.name):
                    skipped_stale += 1
                    continue
                seen.add(summary.address)
                discovered.append(summary)
                if len(discovered) >= max_servers:
                    break

            # The next link already carries every query parameter
            endpoint = (data.get("links") or {}).get("next")
            params = None
            logger.debug(f"Discovery page {page + 1}: {len(discovered)} servers so far")

        logger.info(f"Discovered {len(discovered)} servers ({skipped_stale} relocated listings skipped)")
        return discovered

    async def enrich_batch(self, servers: list[ServerSummary | ServerRecord]) -> dict[str, RankingSnapshot]:
        """Look up every server concurrently and keep only the successes.

        Returns:
            Mapping of address -> snapshot. A missing key means "no data".
        """

        async def lookup(server: ServerSummary | ServerRecord) -> tuple[str, RankingSnapshot | None]:
            return server.address, await self.search_by_address(server.address)

        results = await asyncio.gather(*(lookup(s) for s in servers), return_exceptions=True)

        enriched: dict[str, RankingSnapshot] = {}
        for result in results:
            if isinstance(result, BaseException):
                logger.debug(f"Ranking lookup failed: {result}")
                continue
            address, snapshot = result
            if snapshot is not None:
                enriched[address] = snapshot

        logger.info(f"Enriched {len(enriched)}/{len(servers)} servers from ranking service")
        return enriched


async def main():
    """Example usage of RankingClient."""
    client = RankingClient()
    try:
        servers = await client.discover_all(max_servers=10, max_pages=1)
        print(f"Discovered {len(servers)} servers")
        for server in servers:
            print(f"  {server.address:<22} {server.player_count:>3}/{server.max_players:<3} {server.name}")

        if servers:
            snapshot = await client.search_by_address(servers[0].address)
            if snapshot:
                print(f"\nSnapshot for {snapshot.server_address}: rank={snapshot.rank} status={snapshot.status}")
    finally:
        await client.aclose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
