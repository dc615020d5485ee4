"""Score-to-grade mapping and display badges."""

from server_intel.models.model_quality import Grade, QualityScore

# Lower bound (inclusive) for each grade, best first
GRADE_THRESHOLDS: list[tuple[int, Grade]] = [
    (95, Grade.S),
    (85, Grade.A),
    (70, Grade.B),
    (55, Grade.C),
    (40, Grade.D),
]

GRADE_SYMBOLS: dict[Grade, str] = {
    Grade.S: "🏆",
    Grade.A: "⭐",
    Grade.B: "✓",
    Grade.C: "○",
    Grade.D: "△",
    Grade.F: "⚠",
}


def score_to_grade(score: float) -> Grade:
    """Map a 0-100 score to a letter grade."""
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return Grade.F


def format_quality_badge(quality: QualityScore) -> str:
    """Render e.g. "⭐ Grade A (88/100)"."""
    return f"{GRADE_SYMBOLS[quality.grade]} Grade {quality.grade.value} ({quality.score}/100)"
