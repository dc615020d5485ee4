"""JSON-file storage backend.

Directory structure:
    data/
    ├── servers.json      # Server records
    ├── rankings.json     # Ranking-service snapshots, one per address
    └── analytics.jsonl   # Append-only analytics events
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from server_intel.consts import DEFAULT_DATA_DIR
from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import AnalyticsEvent, ServerRecord
from server_intel.storage.memory_storage import InMemoryStorage

logger = logging.getLogger(__name__)

FILE_FORMAT_VERSION = "1.0"


class JsonFileStorage(InMemoryStorage):
    """Storage persisted as JSON files under a data directory.

    Files are read lazily on first access. A corrupt file raises on that
    first access so callers (the orchestrator's load retry) can decide how to
    degrade.
    """

    def __init__(self, data_dir: Path | str = DEFAULT_DATA_DIR):
        """Initialize JsonFileStorage.

        Args:
            data_dir: Root directory for storage files.
        """
        super().__init__()
        self.data_dir = Path(data_dir)
        self.servers_path = self.data_dir / "servers.json"
        self.rankings_path = self.data_dir / "rankings.json"
        self.analytics_path = self.data_dir / "analytics.jsonl"

    def _write(self, path: Path, key: str, items: list[dict]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = {
            "version": FILE_FORMAT_VERSION,
            "updated_at": datetime.now(UTC).isoformat(),
            "total": len(items),
            key: items,
        }
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    def _read(self, path: Path, key: str) -> list[dict]:
        if not path.exists():
            return []
        data = json.loads(path.read_text(encoding="utf-8"))
        return data.get(key, [])

    def _load(self) -> None:
        servers = [ServerRecord.model_validate(s) for s in self._read(self.servers_path, "servers")]
        rankings = [RankingSnapshot.model_validate(r) for r in self._read(self.rankings_path, "rankings")]
        self._servers = {s.address: s for s in servers}
        self._rankings = {r.server_address: r for r in rankings}
        logger.info(f"Loaded {len(self._servers)} servers and {len(self._rankings)} snapshots from {self.data_dir}")

    def _persist_servers(self) -> None:
        self._write(
            self.servers_path,
            "servers",
            [s.model_dump(mode="json") for s in self._servers.values()],
        )

    def _persist_rankings(self) -> None:
        self._write(
            self.rankings_path,
            "rankings",
            [r.model_dump(mode="json") for r in self._rankings.values()],
        )

    def _persist_event(self, event: AnalyticsEvent) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with self.analytics_path.open("a", encoding="utf-8") as f:
            f.write(event.model_dump_json() + "\n")


async def main():
    """Example usage of JsonFileStorage."""
    import tempfile

    with tempfile.TemporaryDirectory() as tmp:
        storage = JsonFileStorage(tmp)
        await storage.create_server(ServerRecord(address="1.2.3.4:2302", name="Demo", player_count=12))
        await storage.update_server("1.2.3.4:2302", {"player_count": 30, "map": "Chernarus"})
        await storage.upsert_ranking_snapshot(RankingSnapshot(server_address="1.2.3.4:2302", rank=1200))

        reloaded = JsonFileStorage(tmp)
        for server in await reloaded.get_servers():
            print(f"{server.address}: {server.name} [{server.map}] {server.player_count} players")
        print(f"Snapshots: {len(await reloaded.get_all_ranking_snapshots())}")


if __name__ == "__main__":
    import asyncio

    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
