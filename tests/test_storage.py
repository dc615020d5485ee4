"""Tests for storage backends and listing filters."""

import asyncio
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import (
    AnalyticsEvent,
    Mod,
    Perspective,
    ServerFilters,
    ServerRecord,
)
from server_intel.storage.base import apply_filters
from server_intel.storage.file_storage import JsonFileStorage
from server_intel.storage.memory_storage import InMemoryStorage


@pytest.fixture
def listing() -> list[ServerRecord]:
    """A small, varied server population."""
    return [
        ServerRecord(
            address="1.1.1.1:2302",
            name="Cherno Vanilla",
            map="Chernarus",
            perspective=Perspective.FIRST_PERSON,
            region="EU",
            player_count=50,
            max_players=60,
            ping=30,
        ),
        ServerRecord(
            address="2.2.2.2:2302",
            name="Full Namalsk",
            map="Namalsk",
            perspective=Perspective.THIRD_PERSON,
            region="NA-EAST",
            player_count=60,
            max_players=60,
            ping=120,
            password_protected=True,
            mods=[Mod(id=str(i), name=f"Mod {i}") for i in range(12)],
        ),
        ServerRecord(
            address="3.3.3.3:2302",
            name="Modded Livonia",
            map="Livonia",
            perspective=Perspective.BOTH,
            region="EU",
            player_count=5,
            max_players=0,
            ping=None,
            mods=[Mod(id="1", name="CF")],
        ),
    ]


class TestApplyFilters:
    """Tests for the shared filter semantics."""

    def test_no_filters_sorted_by_players(self, listing) -> None:
        assert [s.address for s in apply_filters(listing, None)] == [
            "2.2.2.2:2302",
            "1.1.1.1:2302",
            "3.3.3.3:2302",
        ]

    def test_map_case_insensitive(self, listing) -> None:
        result = apply_filters(listing, ServerFilters(map="chernarus"))
        assert [s.address for s in result] == ["1.1.1.1:2302"]

    def test_max_ping_excludes_unknown(self, listing) -> None:
        result = apply_filters(listing, ServerFilters(max_ping=100))
        assert [s.address for s in result] == ["1.1.1.1:2302"]

    def test_perspective_both_means_any(self, listing) -> None:
        assert len(apply_filters(listing, ServerFilters(perspective=Perspective.BOTH))) == 3
        result = apply_filters(listing, ServerFilters(perspective=Perspective.THIRD_PERSON))
        assert [s.address for s in result] == ["2.2.2.2:2302"]

    def test_hide_full_keeps_unknown_capacity(self, listing) -> None:
        result = apply_filters(listing, ServerFilters(show_full=False))
        assert {s.address for s in result} == {"1.1.1.1:2302", "3.3.3.3:2302"}

    def test_hide_password_protected(self, listing) -> None:
        result = apply_filters(listing, ServerFilters(show_password_protected=False))
        assert "2.2.2.2:2302" not in {s.address for s in result}

    @pytest.mark.parametrize(
        "bucket,expected",
        [("vanilla", {"1.1.1.1:2302"}), ("1-10", {"3.3.3.3:2302"}), ("10+", {"2.2.2.2:2302"})],
    )
    def test_mod_count_buckets(self, listing, bucket, expected) -> None:
        assert {s.address for s in apply_filters(listing, ServerFilters(mod_count=bucket))} == expected

    def test_regions_and_min_players(self, listing) -> None:
        result = apply_filters(listing, ServerFilters(regions=["EU"], min_players=10))
        assert [s.address for s in result] == ["1.1.1.1:2302"]


class TestInMemoryStorage:
    """Tests for the in-memory backend."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, storage: InMemoryStorage, sample_server: ServerRecord) -> None:
        await storage.create_server(sample_server)
        loaded = await storage.get_server(sample_server.address)
        assert loaded == sample_server
        assert await storage.get_server("9.9.9.9:1") is None

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, storage, sample_server) -> None:
        await storage.create_server(sample_server)
        loaded = await storage.get_server(sample_server.address)
        loaded.mods.clear()
        assert len((await storage.get_server(sample_server.address)).mods) == 1

    @pytest.mark.asyncio
    async def test_update_never_changes_address(self, storage, sample_server) -> None:
        await storage.create_server(sample_server)
        updated = await storage.update_server(
            sample_server.address, {"address": "6.6.6.6:1", "player_count": 77}
        )
        assert updated.address == sample_server.address
        assert updated.player_count == 77
        assert await storage.get_server("6.6.6.6:1") is None

    @pytest.mark.asyncio
    async def test_update_validates(self, storage, sample_server) -> None:
        await storage.create_server(sample_server)
        updated = await storage.update_server(sample_server.address, {"perspective": "3PP"})
        assert updated.perspective == Perspective.THIRD_PERSON

    @pytest.mark.asyncio
    async def test_update_missing(self, storage) -> None:
        assert await storage.update_server("9.9.9.9:1", {"name": "x"}) is None

    @pytest.mark.asyncio
    async def test_delete(self, storage, sample_server) -> None:
        await storage.create_server(sample_server)
        assert await storage.delete_server(sample_server.address)
        assert not await storage.delete_server(sample_server.address)

    @pytest.mark.asyncio
    async def test_snapshot_upsert_is_keyed_by_address(self, storage) -> None:
        await storage.upsert_ranking_snapshot(RankingSnapshot(server_address="1.1.1.1:2302", rank=10))
        await storage.upsert_ranking_snapshot(RankingSnapshot(server_address="1.1.1.1:2302", rank=20))

        snapshots = await storage.get_all_ranking_snapshots()
        assert len(snapshots) == 1
        assert (await storage.get_ranking_snapshot("1.1.1.1:2302")).rank == 20

    @pytest.mark.asyncio
    async def test_concurrent_upserts(self, storage) -> None:
        await asyncio.gather(
            *(
                storage.upsert_ranking_snapshot(RankingSnapshot(server_address=f"10.0.0.{i}:2302"))
                for i in range(20)
            )
        )
        assert len(await storage.get_all_ranking_snapshots()) == 20

    @pytest.mark.asyncio
    async def test_analytics_events(self, storage) -> None:
        await storage.add_analytics_event(AnalyticsEvent(server_address="1.1.1.1:2302", player_count=3))
        assert [e.player_count for e in storage.analytics_events] == [3]


class TestJsonFileStorage:
    """Tests for JSON file persistence."""

    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path: Path, sample_server, sample_snapshot) -> None:
        storage = JsonFileStorage(tmp_path)
        await storage.create_server(sample_server)
        await storage.upsert_ranking_snapshot(sample_snapshot)

        reloaded = JsonFileStorage(tmp_path)
        assert await reloaded.get_server(sample_server.address) == sample_server
        assert await reloaded.get_ranking_snapshot(sample_server.address) == sample_snapshot

    @pytest.mark.asyncio
    async def test_file_format(self, tmp_path: Path, sample_server) -> None:
        storage = JsonFileStorage(tmp_path)
        await storage.create_server(sample_server)

        data = json.loads((tmp_path / "servers.json").read_text(encoding="utf-8"))
        assert data["total"] == 1
        assert data["servers"][0]["address"] == sample_server.address
        assert not (tmp_path / "servers.tmp").exists()

    @pytest.mark.asyncio
    async def test_analytics_appended(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path)
        await storage.add_analytics_event(AnalyticsEvent(server_address="a:1"))
        await storage.add_analytics_event(AnalyticsEvent(server_address="b:1"))
        lines = (tmp_path / "analytics.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_then_recovers(self, tmp_path: Path, sample_server) -> None:
        (tmp_path / "servers.json").write_text("{not json", encoding="utf-8")
        storage = JsonFileStorage(tmp_path)

        with pytest.raises(json.JSONDecodeError):
            await storage.get_servers()

        (tmp_path / "servers.json").write_text(json.dumps({"servers": []}), encoding="utf-8")
        assert await storage.get_servers() == []

    @pytest.mark.asyncio
    async def test_missing_directory_is_empty(self, tmp_path: Path) -> None:
        storage = JsonFileStorage(tmp_path / "nope")
        assert await storage.get_servers() == []
        assert await storage.get_all_ranking_snapshots() == []

    @pytest.mark.asyncio
    async def test_batch_defers_writes_until_outermost_exit(
        self, tmp_path: Path, sample_server, sample_snapshot
    ) -> None:
        storage = JsonFileStorage(tmp_path)
        await storage.create_server(sample_server)

        with patch.object(storage, "_write", wraps=storage._write) as write:
            async with storage.batch():
                async with storage.batch():
                    for count in (10, 20, 30):
                        await storage.update_server(sample_server.address, {"player_count": count})
                    await storage.upsert_ranking_snapshot(sample_snapshot)
                assert write.call_count == 0
            assert write.call_count == 2

        reloaded = JsonFileStorage(tmp_path)
        assert (await reloaded.get_server(sample_server.address)).player_count == 30
        assert await reloaded.get_ranking_snapshot(sample_server.address) == sample_snapshot

    @pytest.mark.asyncio
    async def test_writes_outside_batch_persist_immediately(self, tmp_path: Path, sample_server) -> None:
        storage = JsonFileStorage(tmp_path)
        with patch.object(storage, "_write", wraps=storage._write) as write:
            await storage.create_server(sample_server)
            await storage.update_server(sample_server.address, {"player_count": 1})
        assert write.call_count == 2
