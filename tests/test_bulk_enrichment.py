"""Tests for the bulk enrichment job."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from server_intel.models.model_enrichment import EnrichmentProgress
from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import ServerRecord
from server_intel.services.bulk_enrichment import BulkEnrichmentJob, EnrichmentAlreadyRunningError
from server_intel.storage.memory_storage import InMemoryStorage


@pytest.fixture
def ranking_client() -> MagicMock:
    client = MagicMock()
    client.search_by_address = AsyncMock(
        side_effect=lambda address: RankingSnapshot(server_address=address, rank=100)
    )
    return client


def _job(storage, ranking_client, **kwargs) -> BulkEnrichmentJob:
    params = {"batch_size": 2, "request_delay": 0, "batch_delay": 0}
    params.update(kwargs)
    return BulkEnrichmentJob(storage, ranking_client, **params)


async def _populate(storage: InMemoryStorage, count: int) -> list[ServerRecord]:
    servers = [ServerRecord(address=f"10.0.0.{i}:2302", name=f"Server {i}") for i in range(count)]
    for server in servers:
        await storage.create_server(server)
    return servers


class TestPartitionAndEstimate:
    """Tests for staleness partitioning and ETA."""

    def test_partition(self) -> None:
        now = datetime(2025, 6, 1, tzinfo=UTC)
        job = BulkEnrichmentJob(MagicMock(), MagicMock(), max_age_seconds=3600)
        servers = [ServerRecord(address=a, name=a) for a in ("new:1", "stale:1", "fresh:1")]
        snapshots = [
            RankingSnapshot(server_address="stale:1", cached_at=now - timedelta(hours=2)),
            RankingSnapshot(server_address="fresh:1", cached_at=now - timedelta(minutes=10)),
        ]

        stale, fresh = job.partition(servers, snapshots, now)

        assert [s.address for s in stale] == ["new:1", "stale:1"]
        assert [s.address for s in fresh] == ["fresh:1"]

    def test_estimate(self) -> None:
        job = BulkEnrichmentJob(MagicMock(), MagicMock(), batch_size=10, request_delay=1.5, batch_delay=2.0)
        # 3 batches * 2.0 + 25 * 1.5
        assert job.estimate_seconds(25) == 43.5
        assert job.estimate_seconds(0) == 0


class TestRun:
    """Tests for a full enrichment run."""

    @pytest.mark.asyncio
    async def test_enriches_stale_and_skips_fresh(self, storage, ranking_client) -> None:
        await _populate(storage, 5)
        await storage.upsert_ranking_snapshot(
            RankingSnapshot(server_address="10.0.0.0:2302", cached_at=datetime.now(UTC))
        )
        job = _job(storage, ranking_client)

        progress = await job.run()

        assert progress.total_servers == 4
        assert progress.skipped_servers == 1
        assert progress.processed_servers == 4
        assert progress.successful_enrichments == 4
        assert progress.failed_enrichments == 0
        assert progress.total_batches == 2
        assert not progress.is_running
        assert progress.finished_at is not None
        assert progress.estimated_completion_time is not None

        snapshots = {s.server_address: s for s in await storage.get_all_ranking_snapshots()}
        assert len(snapshots) == 5
        assert snapshots["10.0.0.1:2302"].last_detail_refresh is not None

    @pytest.mark.asyncio
    async def test_per_server_failures_counted(self, storage) -> None:
        await _populate(storage, 3)

        async def lookup(address: str):
            if address == "10.0.0.1:2302":
                raise RuntimeError("boom")
            if address == "10.0.0.2:2302":
                return None
            return RankingSnapshot(server_address=address)

        client = MagicMock()
        client.search_by_address = AsyncMock(side_effect=lookup)
        job = _job(storage, client)

        progress = await job.run()

        assert progress.successful_enrichments == 1
        assert progress.failed_enrichments == 2
        assert progress.processed_servers == 3
        assert any("boom" in e for e in progress.errors)
        assert "No ranking data found for 10.0.0.2:2302" in progress.errors

    @pytest.mark.asyncio
    async def test_progress_callback(self, storage, ranking_client) -> None:
        await _populate(storage, 3)
        seen: list[EnrichmentProgress] = []
        job = _job(storage, ranking_client)

        await job.run(progress_callback=seen.append)

        assert [p.processed_servers for p in seen] == [1, 2, 3]
        assert all(p.is_running for p in seen)

    @pytest.mark.asyncio
    async def test_delays(self, storage, ranking_client, monkeypatch) -> None:
        await _populate(storage, 5)
        sleep = AsyncMock()
        monkeypatch.setattr("server_intel.services.bulk_enrichment.asyncio.sleep", sleep)
        job = _job(storage, ranking_client, request_delay=1.5, batch_delay=2.0)

        await job.run()

        delays = [c.args[0] for c in sleep.await_args_list]
        # Batches [2, 2, 1]: one in-batch delay per full batch, two between-batch delays
        assert sorted(delays) == [1.5, 1.5, 2.0, 2.0]

    @pytest.mark.asyncio
    async def test_second_start_rejected(self, storage) -> None:
        await _populate(storage, 2)
        gate = asyncio.Event()

        async def slow_lookup(address: str):
            await gate.wait()
            return RankingSnapshot(server_address=address)

        client = MagicMock()
        client.search_by_address = AsyncMock(side_effect=slow_lookup)
        job = _job(storage, client)

        first = asyncio.create_task(job.run())
        while job.get_progress().total_servers == 0:
            await asyncio.sleep(0)
        before = job.get_progress()

        with pytest.raises(EnrichmentAlreadyRunningError):
            await job.run()
        with pytest.raises(EnrichmentAlreadyRunningError):
            job.reset_progress()

        assert job.get_progress() == before
        gate.set()
        progress = await first
        assert progress.successful_enrichments == 2

    @pytest.mark.asyncio
    async def test_fatal_error_recorded_and_raised(self, ranking_client) -> None:
        storage = MagicMock()
        storage.get_servers = AsyncMock(side_effect=OSError("storage offline"))
        job = _job(storage, ranking_client)

        with pytest.raises(OSError):
            await job.run()

        progress = job.get_progress()
        assert not progress.is_running
        assert progress.errors == ["Fatal error: storage offline"]

        # The job can run again after a fatal error
        storage.get_servers = AsyncMock(return_value=[])
        storage.get_all_ranking_snapshots = AsyncMock(return_value=[])
        assert (await job.run()).total_servers == 0

    @pytest.mark.asyncio
    async def test_error_log_bounded(self, storage) -> None:
        await _populate(storage, 6)
        client = MagicMock()
        client.search_by_address = AsyncMock(side_effect=RuntimeError("x" * 500))
        job = _job(storage, client, max_errors=3, max_error_length=50)

        progress = await job.run()

        assert progress.failed_enrichments == 6
        assert len(progress.errors) == 3
        assert all(len(e) <= 50 for e in progress.errors)
        assert all(e.endswith("...") for e in progress.errors)
        assert progress.errors[-1].startswith("Failed to enrich 10.0.0.5:2302")

    @pytest.mark.asyncio
    async def test_reset_progress(self, storage, ranking_client) -> None:
        await _populate(storage, 1)
        job = _job(storage, ranking_client)
        await job.run()

        job.reset_progress()

        assert job.get_progress() == EnrichmentProgress()
