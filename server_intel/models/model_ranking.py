"""Ranking-service snapshot models.

Internal shape only: external payload field names never appear here. The
adapter in `server_intel.clients.battlemetrics.mapping` translates them.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from server_intel.models.common import _utc_now, age_seconds


class RankingDetails(BaseModel):
    """Free-form detail blob carried by a snapshot."""

    created_at: datetime | None = Field(default=None, description="When the listing was first tracked")
    updated_at: datetime | None = Field(default=None)
    players: int | None = Field(default=None, ge=0, description="Live count seen by the service")
    max_players: int | None = Field(default=None, ge=0)
    map: str | None = None
    version: str | None = None
    private: bool | None = None
    query_port: int | None = None
    game_port: int | None = None
    query_status: str | None = None
    mod_names: list[str] = Field(default_factory=list)
    workshop_ids: list[str] = Field(default_factory=list)
    organization_name: str | None = None
    owner_name: str | None = None


class RankingSnapshot(BaseModel):
    """Cached ranking-service view of one server (at most one per address)."""

    server_address: str = Field(description="Identity of the server this snapshot belongs to")
    ranking_id: str | None = Field(default=None, description="Identifier on the ranking service")
    server_name: str | None = None
    rank: int | None = Field(default=None, ge=0, description="Lower is better")
    status: str | None = None
    country: str | None = None
    city: str | None = None
    uptime_percent_7d: float | None = Field(default=None, ge=0.0, le=100.0)
    uptime_percent_30d: float | None = Field(default=None, ge=0.0, le=100.0)
    avg_player_count_7d: float | None = Field(default=None, ge=0.0)
    peak_player_count_7d: int | None = Field(default=None, ge=0)
    max_player_count: int | None = Field(default=None, ge=0)
    details: RankingDetails = Field(default_factory=RankingDetails)
    cached_at: datetime = Field(default_factory=_utc_now, description="Summary freshness")
    last_detail_refresh: datetime | None = Field(default=None, description="Detail freshness")

    def summary_age(self, now: datetime) -> float:
        """Seconds since the summary was cached."""
        return age_seconds(self.cached_at, now)

    def detail_age(self, now: datetime) -> float:
        """Seconds since details were last refreshed (infinity if never)."""
        return age_seconds(self.last_detail_refresh, now)

    def listing_age_days(self, now: datetime) -> float | None:
        """Days the ranking service has tracked this listing."""
        if self.details.created_at is None:
            return None
        return age_seconds(self.details.created_at, now) / 86400
