"""Fraud detection: live data that is implausible against ranking-service data.

Each rule is independent and may add a flag. Rules only fire when the data
they compare is present.
"""

from datetime import datetime

from server_intel.models.common import _utc_now
from server_intel.models.model_quality import FraudFlag, FraudType, Severity
from server_intel.models.model_ranking import RankingSnapshot
from server_intel.models.model_server import ServerRecord

# Live count vs the ranking service's own live count
INFLATION_RATIO_HIGH = 1.5
INFLATION_MIN_PLAYERS = 5

# Live count vs the ranking service's advertised capacity
INFLATION_RATIO_MEDIUM = 1.2

# Perfect uptime claimed by a listing younger than this is suspicious
NEW_LISTING_DAYS = 7

# Bad rank combined with near-perfect uptime does not add up
MISMATCH_RANK = 80_000
MISMATCH_UPTIME = 95.0


def snapshot_capacity(snapshot: RankingSnapshot) -> int | None:
    """Capacity as advertised to the ranking service."""
    return snapshot.max_player_count or snapshot.details.max_players or None


def detect_fraud(
    server: ServerRecord,
    snapshot: RankingSnapshot,
    now: datetime | None = None,
) -> list[FraudFlag]:
    """Run every fraud rule against one server.

    Args:
        server: Server record with the live player count.
        snapshot: Ranking-service snapshot for the same server.
        now: Reference time for listing age. Defaults to current UTC time.

    Returns:
        Flags in rule order (possibly empty).
    """
    now = now or _utc_now()
    flags: list[FraudFlag] = []
    live = server.player_count

    seen_players = snapshot.details.players
    if (
        seen_players is not None
        and live > INFLATION_MIN_PLAYERS
        and live > seen_players * INFLATION_RATIO_HIGH
    ):
        flags.append(
            FraudFlag(
                type=FraudType.INFLATED_PLAYERS,
                severity=Severity.HIGH,
                evidence=f"Live query reports {live} players but ranking service sees {seen_players}",
            )
        )

    capacity = snapshot_capacity(snapshot)
    if capacity and live > capacity * INFLATION_RATIO_MEDIUM:
        flags.append(
            FraudFlag(
                type=FraudType.INFLATED_PLAYERS,
                severity=Severity.MEDIUM,
                evidence=f"{live} players exceeds advertised maximum of {capacity} by more than 20%",
            )
        )

    age_days = snapshot.listing_age_days(now)
    if snapshot.uptime_percent_7d == 100 and age_days is not None and age_days < NEW_LISTING_DAYS:
        flags.append(
            FraudFlag(
                type=FraudType.SUSPICIOUS_RANK,
                severity=Severity.LOW,
                evidence=f"100% uptime claimed but listing is only {age_days:.1f} days old",
            )
        )

    uptime = snapshot.uptime_percent_7d
    if snapshot.rank and snapshot.rank > MISMATCH_RANK and uptime is not None and uptime > MISMATCH_UPTIME:
        flags.append(
            FraudFlag(
                type=FraudType.BM_MISMATCH,
                severity=Severity.LOW,
                evidence=f"Rank {snapshot.rank:,} is inconsistent with {uptime:.1f}% uptime",
            )
        )

    return flags
