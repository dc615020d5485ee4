"""Services that drive discovery, refresh, enrichment and scoring."""

from server_intel.services.backoff import ExponentialBackoff
from server_intel.services.bulk_enrichment import BulkEnrichmentJob, EnrichmentAlreadyRunningError
from server_intel.services.intelligence import (
    ServerIntelService,
    build_server_intel,
    filter_listings,
)
from server_intel.services.mod_enrichment import ModEnrichmentService
from server_intel.services.refresh_orchestrator import CacheOrchestrator, materialize_mods

__all__ = [
    # Refresh
    "CacheOrchestrator",
    "materialize_mods",
    # Bulk job
    "BulkEnrichmentJob",
    "EnrichmentAlreadyRunningError",
    # Mods
    "ModEnrichmentService",
    # Intelligence
    "ServerIntelService",
    "build_server_intel",
    "filter_listings",
    # Utilities
    "ExponentialBackoff",
]
