"""External service clients.

This module provides:
- RankingClient: ranking/uptime service (BattleMetrics)
- WorkshopClient: mod metadata service (Steam Workshop)
- LiveQueryClient: direct A2S queries against game servers
"""

from server_intel.clients.battlemetrics.ranking_client import RankingClient
from server_intel.clients.steam.live_query import LiveQueryClient
from server_intel.clients.steam.workshop_client import WorkshopClient

__all__ = [
    "LiveQueryClient",
    "RankingClient",
    "WorkshopClient",
]
