"""Bulk enrichment job: refresh ranking snapshots for every stale server.

An explicit, observable, long-running batch process, separate from the
background refresh cycle. Only one run may be active per job instance.
"""

import asyncio
import logging
import math
from collections.abc import Callable
from datetime import datetime, timedelta

from server_intel.clients.battlemetrics.ranking_client import RankingClient
from server_intel.consts import (
    BULK_BATCH_DELAY,
    BULK_BATCH_SIZE,
    BULK_MAX_ERROR_LENGTH,
    BULK_MAX_ERRORS,
    BULK_REQUEST_DELAY,
    SNAPSHOT_MAX_AGE_SECONDS,
)
from server_intel.models.common import _utc_now
from server_intel.models.model_enrichment import EnrichmentProgress
from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import ServerRecord
from server_intel.storage.base import ServerStorage

logger = logging.getLogger(__name__)


class EnrichmentAlreadyRunningError(RuntimeError):
    """Raised when a bulk enrichment run is requested while one is active."""


class BulkEnrichmentJob:
    """Enriches all cache-stale servers in rate-limited batches.

    Flow:
    1. Two bulk reads: every server and every snapshot
    2. Partition: no snapshot or snapshot older than the staleness window
       is enqueued, everything else is skipped
    3. Fixed-size batches, sequential within a batch, with a delay between
       requests and a longer delay between batches
    4. Per-server failures are counted and logged, never fatal
    """

    def __init__(
        self,
        storage: ServerStorage,
        ranking_client: RankingClient,
        batch_size: int = BULK_BATCH_SIZE,
        request_delay: float = BULK_REQUEST_DELAY,
        batch_delay: float = BULK_BATCH_DELAY,
        max_age_seconds: float = SNAPSHOT_MAX_AGE_SECONDS,
        max_errors: int = BULK_MAX_ERRORS,
        max_error_length: int = BULK_MAX_ERROR_LENGTH,
    ):
        """Initialize BulkEnrichmentJob.

        Args:
            storage: Storage backend.
            ranking_client: Ranking-service client.
            batch_size: Servers per batch.
            request_delay: Seconds between requests within a batch.
            batch_delay: Seconds between batches.
            max_age_seconds: Snapshots older than this are re-fetched.
            max_errors: Error log capacity (oldest entries dropped first).
            max_error_length: Max characters per error entry.
        """
        self.storage = storage
        self.ranking_client = ranking_client
        self.batch_size = batch_size
        self.request_delay = request_delay
        self.batch_delay = batch_delay
        self.max_age_seconds = max_age_seconds
        self.max_errors = max_errors
        self.max_error_length = max_error_length

        self._progress = EnrichmentProgress()

    @property
    def is_running(self) -> bool:
        return self._progress.is_running

    def get_progress(self) -> EnrichmentProgress:
        """Snapshot of current progress (safe to read while running)."""
        return self._progress.model_copy(deep=True)

    def reset_progress(self) -> None:
        """Clear counters from a finished run."""
        if self._progress.is_running:
            raise EnrichmentAlreadyRunningError("Cannot reset progress while enrichment is running")
        self._progress = EnrichmentProgress()

    def _record_error(self, message: str) -> None:
        if len(message) > self.max_error_length:
            message = message[: self.max_error_length - 3] + "..."
        self._progress.errors.append(message)
        overflow = len(self._progress.errors) - self.max_errors
        if overflow > 0:
            del self._progress.errors[:overflow]

    def estimate_seconds(self, server_count: int) -> float:
        """Expected run time from the configured delays alone."""
        batches = math.ceil(server_count / self.batch_size) if server_count else 0
        return batches * self.batch_delay + server_count * self.request_delay

    def partition(
        self,
        servers: list[ServerRecord],
        snapshots: list[RankingSnapshot],
        now: datetime,
    ) -> tuple[list[ServerRecord], list[ServerRecord]]:
        """Split servers into (needs enrichment, fresh).

        Args:
            servers: Every known server.
            snapshots: Every cached snapshot.
            now: Reference time for staleness.
        """
        by_address = {s.server_address: s for s in snapshots}
        stale: list[ServerRecord] = []
        fresh: list[ServerRecord] = []
        for server in servers:
            snapshot = by_address.get(server.address)
            if snapshot is None or snapshot.summary_age(now) > self.max_age_seconds:
                stale.append(server)
            else:
                fresh.append(server)
        return stale, fresh

    async def _enrich_server(self, server: ServerRecord) -> None:
        try:
            logger.debug(f"Enriching {server.address} ({server.name})...")
            snapshot = await self.ranking_client.search_by_address(server.address)
            if snapshot is None:
                self._progress.failed_enrichments += 1
                self._record_error(f"No ranking data found for {server.address}")
                logger.debug(f"✗ No ranking data for {server.address}")
                return

            snapshot = snapshot.model_copy(update={"last_detail_refresh": _utc_now()})
            await self.storage.upsert_ranking_snapshot(snapshot)
            self._progress.successful_enrichments += 1
            logger.debug(f"✓ Enriched {server.address}")
        except Exception as e:
            self._progress.failed_enrichments += 1
            self._record_error(f"Failed to enrich {server.address}: {e}")
            logger.warning(f"✗ Failed to enrich {server.address}: {e}")
        finally:
            self._progress.processed_servers += 1

    async def run(
        self,
        progress_callback: Callable[[EnrichmentProgress], None] | None = None,
    ) -> EnrichmentProgress:
        """Run one full enrichment pass.

        Args:
            progress_callback: Optional callback invoked after every server
                with a progress snapshot (for CLI updates).

        Returns:
            Final progress.

        Raises:
            EnrichmentAlreadyRunningError: If a run is already active. The
                active run's progress is left untouched.
            Exception: Whatever the initial bulk reads raise. Recorded once
                as a fatal error before re-raising.
        """
        if self._progress.is_running:
            raise EnrichmentAlreadyRunningError("Enrichment is already in progress")

        # Claim the run before the first await
        self._progress = EnrichmentProgress(is_running=True, start_time=_utc_now())
        logger.info("Starting bulk enrichment...")

        try:
            servers = await self.storage.get_servers()
            snapshots = await self.storage.get_all_ranking_snapshots()
            logger.info(f"Loaded {len(servers)} servers and {len(snapshots)} snapshots")

            to_enrich, fresh = self.partition(servers, snapshots, _utc_now())
            self._progress.skipped_servers = len(fresh)
            self._progress.total_servers = len(to_enrich)
            self._progress.total_batches = math.ceil(len(to_enrich) / self.batch_size) if to_enrich else 0
            self._progress.estimated_completion_time = _utc_now() + timedelta(
                seconds=self.estimate_seconds(len(to_enrich))
            )
            logger.info(
                f"{len(to_enrich)} servers need enrichment, {len(fresh)} fresh; "
                f"{self._progress.total_batches} batches of {self.batch_size}"
            )

            for start in range(0, len(to_enrich), self.batch_size):
                batch = to_enrich[start : start + self.batch_size]
                self._progress.current_batch = start // self.batch_size + 1
                logger.info(
                    f"Batch {self._progress.current_batch}/{self._progress.total_batches} "
                    f"({self._progress.processed_servers}/{self._progress.total_servers} done)"
                )

                async with self.storage.batch():
                    for index, server in enumerate(batch):
                        await self._enrich_server(server)
                        if progress_callback:
                            progress_callback(self.get_progress())
                        if index < len(batch) - 1:
                            await asyncio.sleep(self.request_delay)

                if start + self.batch_size < len(to_enrich):
                    await asyncio.sleep(self.batch_delay)

            logger.info(
                f"Bulk enrichment complete: {self._progress.successful_enrichments} succeeded, "
                f"{self._progress.failed_enrichments} failed, {self._progress.skipped_servers} skipped"
            )
        except Exception as e:
            logger.error(f"Fatal error during bulk enrichment: {e}")
            self._record_error(f"Fatal error: {e}")
            raise
        finally:
            self._progress.is_running = False
            self._progress.finished_at = _utc_now()

        return self.get_progress()
