"""Score calculation for monthly KPI metrics.

All functions are pure and total: every score is clamped to ``[0, 100]`` and
zero-activity inputs short-circuit to fixed values instead of dividing by zero.
"""

from __future__ import annotations

from .models import ScoringConfig, SeverityCounts, TicketMetrics

EARLY_DELIVERY_BONUS = 5.0
LATE_CRITICAL_PENALTY = 10.0
REOPEN_PENALTY = 5.0
CONCEPTUAL_BUG_PENALTY = 3.0

MIN_SCORE = 0.0
MAX_SCORE = 100.0


def clamp_score(value: float) -> float:
    """Clamp ``value`` to ``[0, 100]``."""
    return max(MIN_SCORE, min(MAX_SCORE, value))


def delivery_score(metrics: TicketMetrics) -> float:
    """Compute the delivery score from ticket metrics.

    Formula:
    - Base: ``on_time_tickets / completed_tickets * 100``.
    - ``+5`` per early delivery, ``-10`` per late critical ticket and ``-5``
      per reopened ticket.

    Returns ``100.0`` when no tickets were completed.
    """
    if metrics.completed_tickets == 0:
        return MAX_SCORE

    base = metrics.on_time_tickets / metrics.completed_tickets * 100.0
    score = (
        base
        + metrics.early_deliveries * EARLY_DELIVERY_BONUS
        - metrics.late_critical_tickets * LATE_CRITICAL_PENALTY
        - metrics.reopened_tickets * REOPEN_PENALTY
    )
    return clamp_score(score)


def quality_score(
    dev_error_by_severity: SeverityCounts,
    conceptual_bugs: int,
    config: ScoringConfig,
) -> float:
    """Compute the quality score by deducting bug penalties from 100.

    Developer-error bugs use the configured per-severity penalties; conceptual
    bugs cost a fixed 3 points each. Other bug types are free.
    """
    penalties = config.bug_penalties
    deduction = (
        dev_error_by_severity.critical * penalties.critical
        + dev_error_by_severity.high * penalties.high
        + dev_error_by_severity.medium * penalties.medium
        + dev_error_by_severity.low * penalties.low
        + conceptual_bugs * CONCEPTUAL_BUG_PENALTY
    )
    return clamp_score(MAX_SCORE - deduction)


def overall_score(delivery: float, quality: float, config: ScoringConfig) -> float:
    """Weighted combination of delivery and quality scores."""
    return clamp_score(delivery * config.delivery_weight + quality * config.quality_weight)
