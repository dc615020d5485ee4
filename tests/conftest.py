"""Pytest configuration and fixtures."""

from datetime import UTC, datetime, timedelta

import pytest

from server_intel.models.model_ranking import RankingDetails, RankingSnapshot
from server_intel.models.model_server import Mod, Perspective, ServerRecord
from server_intel.storage.memory_storage import InMemoryStorage


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for reproducible scoring."""
    return datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def sample_server() -> ServerRecord:
    """Create a sample server record for testing."""
    return ServerRecord(
        address="185.10.20.30:2302",
        name="Survivors EU #1 | Chernarus | 1PP",
        map="Chernarus",
        perspective=Perspective.FIRST_PERSON,
        region="EU",
        version="1.26",
        player_count=60,
        max_players=100,
        ping=40,
        mods=[Mod(id="1559212036", name="CF", workshop_id="1559212036")],
        uptime=99,
    )


@pytest.fixture
def sample_snapshot(now: datetime) -> RankingSnapshot:
    """Create a clean, fresh ranking snapshot matching sample_server."""
    return RankingSnapshot(
        server_address="185.10.20.30:2302",
        ranking_id="123456",
        server_name="Survivors EU #1 | Chernarus | 1PP",
        rank=500,
        status="online",
        country="DE",
        city="Frankfurt",
        uptime_percent_7d=99.0,
        avg_player_count_7d=55.0,
        max_player_count=100,
        details=RankingDetails(
            created_at=now - timedelta(days=400),
            players=58,
            max_players=100,
            map="chernarusplus",
            mod_names=["CF", "Community-Online-Tools"],
            workshop_ids=["1559212036", "1564026768"],
        ),
        cached_at=now - timedelta(minutes=5),
        last_detail_refresh=now - timedelta(minutes=5),
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    """Create an empty in-memory storage backend."""
    return InMemoryStorage()


def _server_resource(
    server_id: str,
    ip: str,
    port: int,
    name: str,
    players: int = 10,
    max_players: int = 60,
    rank: int | None = 100,
    country: str | None = "DE",
    **extra,
) -> dict:
    """Build a ranking-service JSON:API server resource."""
    attributes = {
        "name": name,
        "ip": ip,
        "port": port,
        "players": players,
        "maxPlayers": max_players,
        "rank": rank,
        "status": "online",
        "country": country,
        "location": [8.68, 50.11],
        "details": {"map": "chernarusplus", "version": "1.26"},
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": "2025-05-31T00:00:00.000Z",
    }
    attributes.update(extra)
    return {"type": "server", "id": server_id, "attributes": attributes, "relationships": {}}


@pytest.fixture
def server_resource():
    """Factory for ranking-service server resources."""
    return _server_resource
