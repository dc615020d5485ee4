"""Pipeline wiring: builds every component of the enrichment pipeline.

The components are:
1. Storage (JSON files under the data directory, or in-memory)
2. Ranking-service client (discovery, snapshots)
3. Live query client (direct server queries)
4. Workshop client + mod classifier (mod enrichment)
5. Cache orchestrator (periodic refresh cycle)
6. Bulk enrichment job (explicit full pass)
7. Intelligence service (quality scoring on read)
"""

import logging
from pathlib import Path

from server_intel.categorization.mod_classifier import ModClassifier
from server_intel.clients.battlemetrics.ranking_client import RankingClient
from server_intel.clients.steam.live_query import LiveQueryClient
from server_intel.clients.steam.workshop_client import WorkshopClient
from server_intel.consts import DEFAULT_DATA_DIR
from server_intel.models.model_enrichment import RefreshSettings
from server_intel.services.bulk_enrichment import BulkEnrichmentJob
from server_intel.services.intelligence import ServerIntelService
from server_intel.services.mod_enrichment import ModEnrichmentService
from server_intel.services.refresh_orchestrator import CacheOrchestrator
from server_intel.storage.base import ServerStorage
from server_intel.storage.file_storage import JsonFileStorage

logger = logging.getLogger(__name__)


class Pipeline:
    """Holds the wired components and closes their network resources."""

    def __init__(
        self,
        storage: ServerStorage,
        ranking_client: RankingClient,
        workshop_client: WorkshopClient,
        live_query: LiveQueryClient | None = None,
        settings: RefreshSettings | None = None,
    ):
        self.storage = storage
        self.ranking_client = ranking_client
        self.workshop_client = workshop_client
        self.live_query = live_query

        self.mod_enrichment = ModEnrichmentService(workshop_client, ModClassifier())
        self.orchestrator = CacheOrchestrator(
            storage=storage,
            ranking_client=ranking_client,
            live_query=live_query,
            mod_enrichment=self.mod_enrichment,
            settings=settings,
        )
        self.bulk_job = BulkEnrichmentJob(storage, ranking_client)
        self.intel = ServerIntelService(storage, ranking_client)

    async def aclose(self) -> None:
        """Stop the refresh loop and close HTTP clients."""
        await self.orchestrator.stop()
        await self.ranking_client.aclose()
        await self.workshop_client.aclose()

    async def __aenter__(self) -> "Pipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def build_pipeline(
    data_dir: Path | str | None = None,
    storage: ServerStorage | None = None,
    use_live_query: bool = True,
    settings: RefreshSettings | None = None,
) -> Pipeline:
    """Build a pipeline with default clients.

    Args:
        data_dir: Data directory for JSON storage. Uses default if None.
        storage: Explicit storage backend. Overrides data_dir.
        use_live_query: If False, details come from the ranking service only.
        settings: Orchestrator tunables.

    Returns:
        Wired Pipeline.
    """
    if storage is None:
        data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
        storage = JsonFileStorage(data_dir)
        logger.debug(f"Using JSON storage at {data_dir}")

    return Pipeline(
        storage=storage,
        ranking_client=RankingClient(),
        workshop_client=WorkshopClient(),
        live_query=LiveQueryClient() if use_live_query else None,
        settings=settings,
    )
