"""Trend classification against a short window of prior monthly scores."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from .models import KPITrend, MonthlyKPI

TREND_THRESHOLD = 5.0
TREND_WINDOW = 3


def classify_trend(current_score: float, previous_scores: Sequence[float]) -> KPITrend:
    """Compare ``current_score`` with the mean of ``previous_scores``.

    More than 5 points above the mean is improving, more than 5 points below
    is declining, anything else (including no history) is stable.
    """
    if not previous_scores:
        return KPITrend.STABLE

    average = sum(previous_scores) / len(previous_scores)

    if current_score > average + TREND_THRESHOLD:
        return KPITrend.IMPROVING
    if current_score < average - TREND_THRESHOLD:
        return KPITrend.DECLINING
    return KPITrend.STABLE


def select_prior_scores(
    history: Iterable[MonthlyKPI],
    developer_id: str,
    month: int,
    year: int,
    limit: int = TREND_WINDOW,
) -> List[float]:
    """Return up to ``limit`` overall scores strictly before ``(month, year)``.

    Scores belong to ``developer_id`` and are ordered most recent first.
    """
    prior = [
        kpi
        for kpi in history
        if kpi.developer_id == developer_id and (kpi.year, kpi.month) < (year, month)
    ]
    prior.sort(key=lambda kpi: (kpi.year, kpi.month), reverse=True)
    return [kpi.overall_score for kpi in prior[:limit]]
