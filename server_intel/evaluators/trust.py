"""Trust scoring: server record + optional ranking snapshot -> QualityScore.

Pure: the result depends only on the inputs and `now`. Start at 100 and
deduct for fraud flags, rank tier, status, player-count plausibility,
location completeness and tracking age.
"""

import math
from datetime import datetime

from server_intel.consts import SCORING_FRESH_SECONDS
from server_intel.evaluators.fraud import detect_fraud
from server_intel.evaluators.grading import score_to_grade
from server_intel.models.common import _utc_now
from server_intel.models.model_quality import (
    FraudFlag,
    Grade,
    QualityScore,
    Severity,
    Trend,
    TrustIndicators,
)
from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import ServerRecord

# Neutral result when no third-party data exists
FALLBACK_SCORE = 50

SEVERITY_PENALTIES: dict[Severity, int] = {
    Severity.HIGH: 30,
    Severity.MEDIUM: 15,
    Severity.LOW: 5,
}
STALE_PENALTY_FACTOR = 0.5

# (exclusive upper rank bound, deduction); worse ranks take the last deduction
RANK_TIERS: list[tuple[int, int]] = [(1_000, 0), (10_000, 10), (50_000, 20)]
RANK_TIER_FLOOR_PENALTY = 30

OFFLINE_PENALTY = 20
OVER_CAPACITY_PENALTY = 10
FAR_OVER_CAPACITY_PENALTY = 20
FAR_OVER_CAPACITY_RATIO = 1.2
INCOMPLETE_LOCATION_PENALTY = 10

# (exclusive lower age bound in days, deduction); younger listings take the last deduction
AGE_TIERS: list[tuple[int, int]] = [(90, 0), (30, 5), (7, 10)]
AGE_TIER_FLOOR_PENALTY = 15

VERIFIED_MIN_SCORE = 70
RISING_RANK = 5_000


def _fallback() -> QualityScore:
    return QualityScore(
        score=FALLBACK_SCORE,
        grade=Grade.C,
        verified=False,
        trust_indicators=TrustIndicators(),
        fraud_flags=[],
    )


def _deviation_ratio(live: int, reference: float | None) -> int | None:
    """100 minus the percentage deviation of `live` from `reference`, floored at 0."""
    if not reference or reference <= 0:
        return None
    deviation = abs(live - reference) / reference * 100
    return max(0, round(100 - deviation))


def calculate_trend(snapshot: RankingSnapshot) -> Trend:
    """Coarse trend without history: good rank -> rising, online with data -> stable."""
    if snapshot.rank and snapshot.rank < RISING_RANK:
        return Trend.RISING
    if snapshot.status == "online" and snapshot.details.players is not None:
        return Trend.STABLE
    return Trend.UNKNOWN


def build_trust_indicators(server: ServerRecord, snapshot: RankingSnapshot) -> TrustIndicators:
    return TrustIndicators(
        uptime_7d=snapshot.uptime_percent_7d,
        rank=snapshot.rank,
        trend=calculate_trend(snapshot),
        player_consistency=_deviation_ratio(server.player_count, snapshot.avg_player_count_7d),
        live_snapshot_match=_deviation_ratio(server.player_count, snapshot.details.players),
    )


def _fraud_penalty(flags: list[FraudFlag], stale: bool) -> int:
    total = 0
    for flag in flags:
        penalty = SEVERITY_PENALTIES[flag.severity]
        if stale:
            penalty = math.floor(penalty * STALE_PENALTY_FACTOR)
        total += penalty
    return total


def _rank_penalty(rank: int | None) -> int:
    if not rank:
        return 0
    for bound, penalty in RANK_TIERS:
        if rank < bound:
            return penalty
    return RANK_TIER_FLOOR_PENALTY


def _capacity_penalty(server: ServerRecord, snapshot: RankingSnapshot) -> int:
    capacity = snapshot.max_player_count or server.max_players
    if not capacity:
        return 0
    if server.player_count > capacity * FAR_OVER_CAPACITY_RATIO:
        return FAR_OVER_CAPACITY_PENALTY
    if server.player_count > capacity:
        return OVER_CAPACITY_PENALTY
    return 0


def _age_penalty(age_days: float | None) -> int:
    if age_days is None:
        return 0
    for bound, penalty in AGE_TIERS:
        if age_days > bound:
            return penalty
    return AGE_TIER_FLOOR_PENALTY


def calculate_quality_score(
    server: ServerRecord,
    snapshot: RankingSnapshot | None,
    now: datetime | None = None,
) -> QualityScore:
    """Score one server.

    Args:
        server: The server record (live player count, capacity).
        snapshot: Cached ranking-service snapshot, or None.
        now: Reference time for staleness and listing age. Defaults to the
            current UTC time; pass it explicitly for reproducible results.

    Returns:
        QualityScore. Without a snapshot this is the neutral grade-C fallback.
    """
    if snapshot is None:
        return _fallback()

    now = now or _utc_now()
    flags = detect_fraud(server, snapshot, now)
    stale = snapshot.summary_age(now) >= SCORING_FRESH_SECONDS

    score = 100
    score -= _fraud_penalty(flags, stale)
    score -= _rank_penalty(snapshot.rank)
    if snapshot.status != "online":
        score -= OFFLINE_PENALTY
    score -= _capacity_penalty(server, snapshot)
    if not snapshot.country or not snapshot.city:
        score -= INCOMPLETE_LOCATION_PENALTY
    score -= _age_penalty(snapshot.listing_age_days(now))

    score = max(0, min(100, score))
    return QualityScore(
        score=score,
        grade=score_to_grade(score),
        verified=not flags and score >= VERIFIED_MIN_SCORE,
        trust_indicators=build_trust_indicators(server, snapshot),
        fraud_flags=flags,
    )


def main() -> None:
    """Demonstrate trust scoring with sample servers."""
    from datetime import timedelta

    from server_intel.evaluators.grading import format_quality_badge
    from server_intel.models.model_ranking import RankingDetails

    now = _utc_now()
    print("Trust Scoring Demo")
    print("=" * 50)

    test_cases = [
        (
            "No ranking data (neutral fallback)",
            ServerRecord(address="1.2.3.4:2302", name="Fresh Server", player_count=10, max_players=60),
            None,
        ),
        (
            "Established, healthy server",
            ServerRecord(address="5.6.7.8:2302", name="Veteran 1PP", player_count=55, max_players=60),
            RankingSnapshot(
                server_address="5.6.7.8:2302",
                rank=420,
                status="online",
                country="DE",
                city="Frankfurt",
                avg_player_count_7d=50,
                max_player_count=60,
                details=RankingDetails(players=54, created_at=now - timedelta(days=400)),
                cached_at=now,
            ),
        ),
        (
            "Inflated live count",
            ServerRecord(address="9.9.9.9:2302", name="Totally Full", player_count=150, max_players=100),
            RankingSnapshot(
                server_address="9.9.9.9:2302",
                rank=500,
                status="online",
                country="US",
                city="Dallas",
                max_player_count=100,
                details=RankingDetails(players=140, created_at=now - timedelta(days=120)),
                cached_at=now,
            ),
        ),
    ]

    for description, server, snapshot in test_cases:
        quality = calculate_quality_score(server, snapshot, now)
        print(f"\n{description}:")
        print(f"  {format_quality_badge(quality)}  verified={quality.verified}")
        for flag in quality.fraud_flags:
            print(f"  [{flag.severity.value}] {flag.type.value}: {flag.evidence}")


if __name__ == "__main__":
    main()
