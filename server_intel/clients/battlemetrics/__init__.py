"""Ranking-service (BattleMetrics) client and payload adapters."""

from server_intel.clients.battlemetrics.ranking_client import RankingClient

__all__ = ["RankingClient"]
