"""
Inspection scoring.

The overall score is the rounded mean of the five human-entered category
scores. Room scores are display-only and never folded into it.
Rounding is round-half-up (88.5 -> 89), not Python's banker's rounding.
"""

import os
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional

from ..models import CategoryScores, MetricStatus, MyHomeScore, ScoreCategory, SnapshotInspection
from .timeutils import localize, new_id, quarter_label

CATEGORY_FIELDS = {
    ScoreCategory.STRUCTURAL: "structural_score",
    ScoreCategory.MECHANICAL: "mechanical_score",
    ScoreCategory.AESTHETIC: "aesthetic_score",
    ScoreCategory.EFFICIENCY: "efficiency_score",
    ScoreCategory.SAFETY: "safety_score",
}


def round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_overall_score(categories: CategoryScores) -> int:
    values = [getattr(categories, category.value) for category in ScoreCategory]
    return round_half_up(Decimal(sum(values)) / Decimal(len(values)))


def category_scores(inspection: SnapshotInspection) -> CategoryScores:
    return CategoryScores(**{
        category.value: getattr(inspection, field)
        for category, field in CATEGORY_FIELDS.items()
    })


def metric_status(
    score: int,
    pass_threshold: Optional[int] = None,
    warn_threshold: Optional[int] = None,
) -> MetricStatus:
    """pass at or above the pass threshold, warn at or above the warn threshold, else fail."""
    if pass_threshold is None:
        pass_threshold = int(os.environ.get("HUDSON_SCORE_PASS_THRESHOLD", "80"))
    if warn_threshold is None:
        warn_threshold = int(os.environ.get("HUDSON_SCORE_WARN_THRESHOLD", "60"))

    if score >= pass_threshold:
        return MetricStatus.PASS
    if score >= warn_threshold:
        return MetricStatus.WARN
    return MetricStatus.FAIL


def score_report(inspection: SnapshotInspection) -> Dict[str, dict]:
    """Each category plus the overall score with its pass/warn/fail status."""
    categories = category_scores(inspection)
    report = {}
    for category in ScoreCategory:
        value = getattr(categories, category.value)
        report[category.value] = {"score": value, "status": metric_status(value).value}

    overall = compute_overall_score(categories)
    report["overall"] = {"score": overall, "status": metric_status(overall).value}
    return report


def gather_recommendations(inspection: SnapshotInspection) -> List[str]:
    seen = set()
    recommendations = []
    for room in inspection.rooms:
        for recommendation in room.recommendations:
            if recommendation not in seen:
                seen.add(recommendation)
                recommendations.append(recommendation)
    return recommendations


def describe_improvements(current: CategoryScores, previous: Optional[MyHomeScore]) -> List[str]:
    if previous is None:
        return []

    improvements = []
    for category in ScoreCategory:
        before = getattr(previous.categories, category.value)
        after = getattr(current, category.value)
        if after > before:
            improvements.append(
                f"{category.value.capitalize()} score improved by {after - before} points"
            )
    return improvements


def build_home_score(
    inspection: SnapshotInspection,
    property_id: str,
    now: datetime,
    previous: Optional[MyHomeScore] = None,
    id_factory: Callable[[str], str] = new_id,
    timezone: Optional[str] = None,
) -> MyHomeScore:
    """
    Quarterly score for a finished inspection.
    Quarter and year are read off the property's local clock at `now`,
    so a New Year's Eve inspection in New York files under Q4.
    """
    categories = category_scores(inspection)
    local = localize(now, timezone)
    return MyHomeScore(
        id=id_factory("score"),
        property_id=property_id,
        score=compute_overall_score(categories),
        quarter=quarter_label(local),
        year=local.year,
        categories=categories,
        improvements=describe_improvements(categories, previous),
        recommendations=gather_recommendations(inspection),
        inspection_id=inspection.id,
        created_at=now,
    )
