"""Live query client (A2S_INFO) for running game servers."""

import asyncio
import logging
import re
import time

import a2s

from server_intel.categorization.inference import infer_perspective, infer_region
from server_intel.consts import LIVE_QUERY_CONCURRENCY, LIVE_QUERY_TIMEOUT
from server_intel.models.model_server import LiveServerInfo, Mod

logger = logging.getLogger(__name__)

_MOD_TOKEN_RE = re.compile(r"@[\w-]+")


def parse_mods_from_keywords(keywords: str | None) -> list[Mod]:
    """Parse "@Mod-Name" tokens out of the free-text keyword field.

    Tokens keep the order they were advertised in and are unique by id.
    """
    mods: list[Mod] = []
    seen: set[str] = set()
    for token in _MOD_TOKEN_RE.findall(keywords or ""):
        mod_id = token[1:]
        if mod_id in seen:
            continue
        seen.add(mod_id)
        mods.append(Mod(id=mod_id, name=mod_id.replace("-", " "), size=0, required=True, installed=False))
    return mods


def _split_address(address: str) -> tuple[str, int]:
    host, _, port = address.rpartition(":")
    return host, int(port)


class LiveQueryClient:
    """Queries game servers directly for name, map, players and mods."""

    def __init__(self, timeout: float = LIVE_QUERY_TIMEOUT):
        self.timeout = timeout

    async def query(self, address: str) -> LiveServerInfo | None:
        """Query one server.

        Args:
            address: host:port of the server's query endpoint.

        Returns:
            LiveServerInfo, or None if the server did not answer.
        """
        try:
            host, port = _split_address(address)
        except ValueError:
            logger.debug(f"Invalid address for live query: {address!r}")
            return None

        start = time.monotonic()
        try:
            info = await a2s.ainfo((host, port), timeout=self.timeout)
        except (OSError, asyncio.TimeoutError, a2s.BrokenMessageError, a2s.BufferExhaustedError) as e:
            logger.debug(f"Live query failed for {address}: {e}")
            return None
        ping_ms = int((time.monotonic() - start) * 1000)

        keywords = info.keywords or ""
        return LiveServerInfo(
            address=address,
            name=info.server_name,
            map=info.map_name,
            player_count=info.player_count,
            max_players=info.max_players,
            ping=ping_ms,
            password_protected=bool(info.password_protected),
            perspective=infer_perspective(f"{keywords} {info.server_name}"),
            region=infer_region(address),
            version=info.version or "",
            mods=parse_mods_from_keywords(keywords),
            verified=bool(info.vac_enabled),
        )

    async def query_many(
        self,
        addresses: list[str],
        concurrency: int = LIVE_QUERY_CONCURRENCY,
    ) -> list[LiveServerInfo]:
        """Query many servers with bounded concurrency, dropping non-responders."""
        semaphore = asyncio.Semaphore(concurrency)

        async def query_one(address: str) -> LiveServerInfo | None:
            async with semaphore:
                return await self.query(address)

        results = await asyncio.gather(*(query_one(a) for a in addresses))
        answered = [r for r in results if r is not None]
        logger.info(f"Live query: {len(answered)}/{len(addresses)} servers answered")
        return answered


async def main():
    """Example usage of LiveQueryClient."""
    import sys

    client = LiveQueryClient()
    addresses = sys.argv[1:] or ["127.0.0.1:27016"]
    for info in await client.query_many(addresses):
        print(f"{info.address}: {info.name} [{info.map}] {info.player_count}/{info.max_players} {info.ping}ms")
        for mod in info.mods:
            print(f"  - {mod.name}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
