"""Evaluators module for scoring servers.

Servers are scored on demand from their record plus an optional cached
ranking-service snapshot. Nothing here is persisted; every function is a
pure function of its inputs and the reference time.
"""

from server_intel.evaluators.fraud import detect_fraud
from server_intel.evaluators.grading import format_quality_badge, score_to_grade
from server_intel.evaluators.trust import (
    build_trust_indicators,
    calculate_quality_score,
    calculate_trend,
)

__all__ = [
    # Fraud
    "detect_fraud",
    # Scoring
    "build_trust_indicators",
    "calculate_quality_score",
    "calculate_trend",
    # Grading
    "format_quality_badge",
    "score_to_grade",
]
