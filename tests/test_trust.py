"""Tests for trust scoring, fraud detection and grading."""

from datetime import datetime, timedelta

import pytest

from server_intel.evaluators.fraud import detect_fraud
from server_intel.evaluators.grading import format_quality_badge, score_to_grade
from server_intel.evaluators.trust import calculate_quality_score, calculate_trend
from server_intel.models.model_quality import FraudType, Grade, Severity, Trend
from server_intel.models.model_ranking import RankingDetails, RankingSnapshot
from server_intel.models.model_server import ServerRecord


def _snapshot(now: datetime, **overrides) -> RankingSnapshot:
    data = {
        "server_address": "185.10.20.30:2302",
        "rank": 500,
        "status": "online",
        "country": "DE",
        "city": "Frankfurt",
        "max_player_count": 100,
        "details": RankingDetails(created_at=now - timedelta(days=120), players=140),
        "cached_at": now,
    }
    data.update(overrides)
    return RankingSnapshot(**data)


class TestScoreToGrade:
    """Tests for grade thresholds."""

    @pytest.mark.parametrize(
        "score,grade",
        [
            (100, Grade.S),
            (95, Grade.S),
            (94, Grade.A),
            (85, Grade.A),
            (70, Grade.B),
            (69, Grade.C),
            (55, Grade.C),
            (40, Grade.D),
            (39, Grade.F),
            (0, Grade.F),
        ],
    )
    def test_thresholds(self, score: int, grade: Grade) -> None:
        assert score_to_grade(score) == grade


class TestCalculateQualityScore:
    """Tests for the scoring engine."""

    def test_no_snapshot_fallback(self, sample_server: ServerRecord) -> None:
        """Without third-party data the score is the neutral 50/C."""
        result = calculate_quality_score(sample_server, None)
        assert result.score == 50
        assert result.grade == Grade.C
        assert not result.verified
        assert result.fraud_flags == []

    def test_clean_server_scores_perfect(self, sample_server, sample_snapshot, now) -> None:
        result = calculate_quality_score(sample_server, sample_snapshot, now)
        assert result.score == 100
        assert result.grade == Grade.S
        assert result.verified
        assert result.trust_indicators.rank == 500
        assert result.trust_indicators.trend == Trend.RISING

    def test_deterministic(self, sample_server, sample_snapshot, now) -> None:
        """Same inputs and reference time give identical results."""
        first = calculate_quality_score(sample_server, sample_snapshot, now)
        second = calculate_quality_score(sample_server, sample_snapshot, now)
        assert first == second

    def test_over_capacity_scenario(self, now) -> None:
        """150 live on a 100-slot server: one medium flag plus far-over-capacity."""
        server = ServerRecord(address="185.10.20.30:2302", name="Busy", player_count=150, max_players=100)
        snapshot = _snapshot(now)

        result = calculate_quality_score(server, snapshot, now)

        assert [(f.type, f.severity) for f in result.fraud_flags] == [
            (FraudType.INFLATED_PLAYERS, Severity.MEDIUM)
        ]
        # 100 - 15 (medium flag) - 20 (> 1.2x capacity)
        assert result.score == 65
        assert result.grade == Grade.C
        assert not result.verified

    def test_stale_snapshot_halves_fraud_penalties(self, now) -> None:
        server = ServerRecord(address="185.10.20.30:2302", name="Busy", player_count=150, max_players=100)
        snapshot = _snapshot(now, cached_at=now - timedelta(hours=7))

        result = calculate_quality_score(server, snapshot, now)

        # 100 - 7 (floor of 15 / 2) - 20
        assert result.score == 73
        assert result.grade == Grade.B
        assert not result.verified

    @pytest.mark.parametrize(
        "rank,expected",
        [(None, 100), (999, 100), (1_000, 90), (9_999, 90), (10_000, 80), (49_999, 80), (50_000, 70)],
    )
    def test_rank_tiers(self, sample_server, now, rank, expected) -> None:
        snapshot = _snapshot(now, rank=rank, details=RankingDetails(created_at=now - timedelta(days=400)))
        assert calculate_quality_score(sample_server, snapshot, now).score == expected

    def test_offline_penalty(self, sample_server, now) -> None:
        snapshot = _snapshot(now, status="dead", details=RankingDetails(created_at=now - timedelta(days=400)))
        assert calculate_quality_score(sample_server, snapshot, now).score == 80

    def test_slightly_over_capacity(self, now) -> None:
        server = ServerRecord(address="a:1", name="x", player_count=110, max_players=100)
        snapshot = _snapshot(now, details=RankingDetails(created_at=now - timedelta(days=400)))
        assert calculate_quality_score(server, snapshot, now).score == 90

    def test_capacity_falls_back_to_record(self, now) -> None:
        server = ServerRecord(address="a:1", name="x", player_count=110, max_players=100)
        snapshot = _snapshot(
            now, max_player_count=None, details=RankingDetails(created_at=now - timedelta(days=400))
        )
        assert calculate_quality_score(server, snapshot, now).score == 90

    def test_incomplete_location(self, sample_server, now) -> None:
        snapshot = _snapshot(now, city=None, details=RankingDetails(created_at=now - timedelta(days=400)))
        assert calculate_quality_score(sample_server, snapshot, now).score == 90

    @pytest.mark.parametrize("days,expected", [(91, 100), (31, 95), (8, 90), (3, 85)])
    def test_age_tiers(self, sample_server, now, days, expected) -> None:
        snapshot = _snapshot(now, details=RankingDetails(created_at=now - timedelta(days=days)))
        assert calculate_quality_score(sample_server, snapshot, now).score == expected

    def test_score_clamped_at_zero(self, now) -> None:
        server = ServerRecord(address="a:1", name="x", player_count=500, max_players=10)
        snapshot = _snapshot(
            now,
            rank=90_000,
            status="offline",
            country=None,
            max_player_count=10,
            uptime_percent_7d=100.0,
            details=RankingDetails(created_at=now - timedelta(days=1), players=5),
        )
        result = calculate_quality_score(server, snapshot, now)
        assert result.score == 0
        assert result.grade == Grade.F

    def test_more_flags_never_raise_score(self, sample_server, now) -> None:
        base = _snapshot(now, details=RankingDetails(created_at=now - timedelta(days=400), players=58))
        flagged = _snapshot(
            now,
            rank=85_000,
            uptime_percent_7d=99.0,
            details=RankingDetails(created_at=now - timedelta(days=400), players=58),
        )
        assert (
            calculate_quality_score(sample_server, flagged, now).score
            <= calculate_quality_score(sample_server, base, now).score
        )

    def test_trust_indicators(self, now) -> None:
        server = ServerRecord(address="a:1", name="x", player_count=50, max_players=100)
        snapshot = _snapshot(
            now,
            avg_player_count_7d=40.0,
            details=RankingDetails(created_at=now - timedelta(days=400), players=50),
        )
        indicators = calculate_quality_score(server, snapshot, now).trust_indicators
        assert indicators.player_consistency == 75
        assert indicators.live_snapshot_match == 100

    def test_badge(self, sample_server, sample_snapshot, now) -> None:
        result = calculate_quality_score(sample_server, sample_snapshot, now)
        assert format_quality_badge(result) == "🏆 Grade S (100/100)"


class TestDetectFraud:
    """Tests for fraud rules."""

    def test_inflated_against_seen_players(self, now) -> None:
        server = ServerRecord(address="a:1", name="x", player_count=60, max_players=100)
        snapshot = _snapshot(now, details=RankingDetails(created_at=now - timedelta(days=400), players=30))
        flags = detect_fraud(server, snapshot, now)
        assert [(f.type, f.severity) for f in flags] == [(FraudType.INFLATED_PLAYERS, Severity.HIGH)]
        assert "60" in flags[0].evidence

    def test_small_counts_ignored(self, now) -> None:
        server = ServerRecord(address="a:1", name="x", player_count=4, max_players=100)
        snapshot = _snapshot(now, details=RankingDetails(created_at=now - timedelta(days=400), players=1))
        assert detect_fraud(server, snapshot, now) == []

    def test_suspicious_new_listing(self, now) -> None:
        server = ServerRecord(address="a:1", name="x", player_count=10, max_players=100)
        snapshot = _snapshot(
            now,
            uptime_percent_7d=100.0,
            details=RankingDetails(created_at=now - timedelta(days=2), players=10),
        )
        flags = detect_fraud(server, snapshot, now)
        assert [(f.type, f.severity) for f in flags] == [(FraudType.SUSPICIOUS_RANK, Severity.LOW)]

    def test_rank_uptime_mismatch(self, now) -> None:
        server = ServerRecord(address="a:1", name="x", player_count=10, max_players=100)
        snapshot = _snapshot(
            now,
            rank=85_000,
            uptime_percent_7d=98.0,
            details=RankingDetails(created_at=now - timedelta(days=400), players=10),
        )
        flags = detect_fraud(server, snapshot, now)
        assert [f.type for f in flags] == [FraudType.BM_MISMATCH]

    def test_missing_data_fires_nothing(self, now) -> None:
        server = ServerRecord(address="a:1", name="x", player_count=500)
        snapshot = RankingSnapshot(server_address="a:1", cached_at=now)
        assert detect_fraud(server, snapshot, now) == []


class TestTrend:
    """Tests for the coarse trend signal."""

    def test_rising(self, now) -> None:
        assert calculate_trend(_snapshot(now, rank=100)) == Trend.RISING

    def test_stable(self, now) -> None:
        assert calculate_trend(_snapshot(now, rank=20_000)) == Trend.STABLE

    def test_unknown(self, now) -> None:
        snapshot = _snapshot(now, rank=None, status="offline")
        assert calculate_trend(snapshot) == Trend.UNKNOWN
