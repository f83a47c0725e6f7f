"""Monthly KPI orchestration.

``compute_monthly_kpi`` is the pure core: records and prior scores in, one
``MonthlyKPI`` out. The store-backed helpers wrap it for the persisted,
preview, and team variants.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Collection, Iterable, List, Optional, Sequence

from .aggregation import aggregate_bug_metrics, aggregate_ticket_metrics
from .errors import NotFoundError
from .models import BugMetrics, BugRecord, MonthlyKPI, ScoringConfig, TicketMetrics, TicketRecord
from .repository import KPIStore
from .scoring import delivery_score, overall_score, quality_score
from .trend import TREND_WINDOW, classify_trend

logger = logging.getLogger(__name__)

TEAM_DEVELOPER_ID = "all"


def on_time_rate(metrics: TicketMetrics) -> float:
    """Percentage of completed tickets delivered on time; 100.0 when none completed."""
    if metrics.completed_tickets == 0:
        return 100.0
    return metrics.on_time_tickets / metrics.completed_tickets * 100.0


def avg_delivery_time(metrics: TicketMetrics) -> float:
    """Average delivery days per completed ticket; 0.0 when none completed."""
    if metrics.completed_tickets == 0:
        return 0.0
    return metrics.total_delivery_days / metrics.completed_tickets


def compute_monthly_kpi(
    developer_id: str,
    month: int,
    year: int,
    tickets: Iterable[TicketRecord],
    bugs: Iterable[BugRecord],
    config: ScoringConfig,
    prior_scores: Sequence[float] = (),
    developer_ids: Optional[Collection[str]] = None,
    generated_at: Optional[datetime] = None,
) -> MonthlyKPI:
    """Compute the KPI of one developer for one month.

    Args:
        developer_id: Developer whose KPI is computed.
        month: Target month, ``1``-``12``.
        year: Target year.
        tickets: Ticket records; other developers' tickets are ignored.
        bugs: Bug records; other developers' bugs are ignored.
        config: Validated scoring configuration.
        prior_scores: Earlier overall scores, most recent first. Only the first
            three are used for the trend.
        developer_ids: Known developers. When given, ``developer_id`` must be
            one of them.
        generated_at: Computation timestamp; defaults to now (UTC).

    Raises:
        NotFoundError: If ``developer_ids`` is given and lacks ``developer_id``.
        DataValidationError: If ``month`` is out of range.
    """
    if developer_ids is not None and developer_id not in developer_ids:
        raise NotFoundError(f"Developer not found: {developer_id}")

    ticket_metrics = aggregate_ticket_metrics(developer_id, month, year, tickets)
    bug_metrics = aggregate_bug_metrics(developer_id, month, year, bugs)

    delivery = delivery_score(ticket_metrics)
    quality = quality_score(bug_metrics.dev_error_by_severity, bug_metrics.conceptual_bugs, config)
    overall = overall_score(delivery, quality, config)
    trend = classify_trend(overall, list(prior_scores)[:TREND_WINDOW])

    return MonthlyKPI(
        developer_id=developer_id,
        month=month,
        year=year,
        tickets=ticket_metrics,
        bugs=bug_metrics,
        on_time_rate=on_time_rate(ticket_metrics),
        avg_delivery_time=avg_delivery_time(ticket_metrics),
        delivery_score=delivery,
        quality_score=quality,
        overall_score=overall,
        trend=trend,
        generated_at=generated_at or datetime.now(timezone.utc),
    )


def _compute_from_store(
    store: KPIStore,
    developer_id: str,
    month: int,
    year: int,
    config: ScoringConfig,
) -> MonthlyKPI:
    store.get_developer(developer_id)
    return compute_monthly_kpi(
        developer_id=developer_id,
        month=month,
        year=year,
        tickets=store.tickets_for(developer_id),
        bugs=store.bugs_for(developer_id),
        config=config,
        prior_scores=store.previous_scores(developer_id, month, year),
    )


def generate_monthly_kpi(
    store: KPIStore,
    developer_id: str,
    month: int,
    year: int,
    config: ScoringConfig,
) -> MonthlyKPI:
    """Compute a developer's monthly KPI and upsert it into ``store``.

    Raises:
        NotFoundError: If the developer does not exist in ``store``.
    """
    kpi = _compute_from_store(store, developer_id, month, year, config)
    stored = store.upsert_kpi(kpi)

    logger.info(
        "Generated monthly KPI",
        extra={
            "developer_id": developer_id,
            "month": month,
            "year": year,
            "overall_score": stored.overall_score,
            "trend": stored.trend.value if stored.trend else None,
        },
    )
    return stored


def preview_current_month_kpi(
    store: KPIStore,
    developer_id: str,
    config: ScoringConfig,
    today: Optional[date] = None,
) -> MonthlyKPI:
    """Compute the current month's KPI without storing it.

    The result carries a ``preview-<developer>-<year>-<month>`` id.
    """
    today = today or datetime.now(timezone.utc).date()
    kpi = _compute_from_store(store, developer_id, today.month, today.year, config)

    return replace(kpi, id=f"preview-{developer_id}-{today.year}-{today.month}")


def compute_team_kpi(
    store: KPIStore,
    month: int,
    year: int,
    config: ScoringConfig,
) -> MonthlyKPI:
    """Aggregate the KPIs of all active developers into one team record.

    Counters are summed, the three scores are averaged over developers, and
    on-time rate and average delivery time are recomputed from the summed
    counters. The team record has no trend.

    Raises:
        NotFoundError: If there are no active developers.
    """
    developers = store.active_developers()
    if not developers:
        raise NotFoundError("No active developers found")

    team_tickets = TicketMetrics()
    team_bugs = BugMetrics()
    delivery_scores: List[float] = []
    quality_scores: List[float] = []
    overall_scores: List[float] = []
    generated_at = datetime.now(timezone.utc)

    for developer in developers:
        kpi = compute_monthly_kpi(
            developer_id=developer.id,
            month=month,
            year=year,
            tickets=store.tickets_for(developer.id),
            bugs=store.bugs_for(developer.id),
            config=config,
            generated_at=generated_at,
        )

        team_tickets.total_tickets += kpi.tickets.total_tickets
        team_tickets.completed_tickets += kpi.tickets.completed_tickets
        team_tickets.on_time_tickets += kpi.tickets.on_time_tickets
        team_tickets.late_tickets += kpi.tickets.late_tickets
        team_tickets.early_deliveries += kpi.tickets.early_deliveries
        team_tickets.late_critical_tickets += kpi.tickets.late_critical_tickets
        team_tickets.reopened_tickets += kpi.tickets.reopened_tickets
        team_tickets.total_delivery_days += kpi.tickets.total_delivery_days

        team_bugs.total_bugs += kpi.bugs.total_bugs
        team_bugs.developer_error_bugs += kpi.bugs.developer_error_bugs
        team_bugs.conceptual_bugs += kpi.bugs.conceptual_bugs
        team_bugs.other_bugs += kpi.bugs.other_bugs
        severity = kpi.bugs.dev_error_by_severity
        team_bugs.dev_error_by_severity.critical += severity.critical
        team_bugs.dev_error_by_severity.high += severity.high
        team_bugs.dev_error_by_severity.medium += severity.medium
        team_bugs.dev_error_by_severity.low += severity.low

        delivery_scores.append(kpi.delivery_score)
        quality_scores.append(kpi.quality_score)
        overall_scores.append(kpi.overall_score)

    logger.info(
        "Computed team KPI",
        extra={"month": month, "year": year, "developers": len(developers)},
    )

    return MonthlyKPI(
        id=f"team-{year}-{month}",
        developer_id=TEAM_DEVELOPER_ID,
        month=month,
        year=year,
        tickets=team_tickets,
        bugs=team_bugs,
        on_time_rate=on_time_rate(team_tickets),
        avg_delivery_time=avg_delivery_time(team_tickets),
        delivery_score=sum(delivery_scores) / len(delivery_scores),
        quality_score=sum(quality_scores) / len(quality_scores),
        overall_score=sum(overall_scores) / len(overall_scores),
        trend=None,
        generated_at=generated_at,
    )
