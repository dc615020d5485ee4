from enum import Enum

from pydantic import BaseModel, Field


class Grade(str, Enum):
    """Letter grades derived from the 0-100 quality score."""

    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class Severity(str, Enum):
    """Fraud flag severity."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FraudType(str, Enum):
    """Kinds of implausibility detected against ranking-service data."""

    INFLATED_PLAYERS = "INFLATED_PLAYERS"
    SUSPICIOUS_RANK = "SUSPICIOUS_RANK"
    BM_MISMATCH = "BM_MISMATCH"


class Trend(str, Enum):
    """Coarse popularity trend."""

    RISING = "rising"
    STABLE = "stable"
    DECLINING = "declining"
    UNKNOWN = "unknown"


class FraudFlag(BaseModel):
    """Typed, severity-tagged fraud signal with human-readable evidence."""

    type: FraudType
    severity: Severity
    evidence: str


class TrustIndicators(BaseModel):
    """Signals surfaced alongside the score."""

    uptime_7d: float | None = None
    rank: int | None = None
    trend: Trend = Trend.UNKNOWN
    player_consistency: int | None = Field(
        default=None, ge=0, le=100, description="100 minus % deviation from the 7-day average"
    )
    live_snapshot_match: int | None = Field(
        default=None, ge=0, le=100, description="100 minus % deviation from the snapshot live count"
    )


class QualityScore(BaseModel):
    """Derived, never persisted. Reproducible from server + snapshot + time."""

    score: int = Field(ge=0, le=100)
    grade: Grade
    verified: bool = False
    trust_indicators: TrustIndicators = Field(default_factory=TrustIndicators)
    fraud_flags: list[FraudFlag] = Field(default_factory=list)


class ServerIntel(BaseModel):
    """Quality score plus the ranking-service facts shown next to a listing."""

    address: str
    name: str
    map: str | None = None
    player_count: int = 0
    max_players: int = 0
    quality: QualityScore
    ranking_rank: int | None = None
    ranking_status: str | None = None
    ranking_id: str | None = None
    ranking_name: str | None = None
    cache_age_hours: int | None = None
