"""Pydantic models for server-intel."""

from server_intel.models.model_enrichment import (
    EnrichmentProgress,
    RefreshCycleResult,
    RefreshSettings,
    RefreshState,
    RefreshStatus,
)
from server_intel.models.model_mod import EnrichedMod, ModCategory, WorkshopItem
from server_intel.models.model_quality import (
    FraudFlag,
    FraudType,
    Grade,
    QualityScore,
    ServerIntel,
    Severity,
    Trend,
    TrustIndicators,
)
from server_intel.models.model_ranking import RankingDetails, RankingSnapshot
from server_intel.models.model_server import (
    AnalyticsEvent,
    LiveServerInfo,
    Mod,
    Perspective,
    Region,
    ServerFilters,
    ServerRecord,
    ServerSummary,
)

__all__ = [
    # Server models
    "AnalyticsEvent",
    "LiveServerInfo",
    "Mod",
    "Perspective",
    "Region",
    "ServerFilters",
    "ServerRecord",
    "ServerSummary",
    # Ranking models
    "RankingDetails",
    "RankingSnapshot",
    # Mod models
    "EnrichedMod",
    "ModCategory",
    "WorkshopItem",
    # Quality models
    "FraudFlag",
    "FraudType",
    "Grade",
    "QualityScore",
    "ServerIntel",
    "Severity",
    "Trend",
    "TrustIndicators",
    # Enrichment models
    "EnrichmentProgress",
    "RefreshCycleResult",
    "RefreshSettings",
    "RefreshState",
    "RefreshStatus",
]
