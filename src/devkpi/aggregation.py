"""Monthly metric aggregation over ticket and bug records.

A ticket belongs to a month when it was assigned in that month OR completed in
that month. The two populations overlap on purpose: a ticket assigned in March
and completed in April is counted in both reports, for volume in March and for
delivery timing in April.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Tuple

from .errors import DataValidationError
from .models import (
    BugMetrics,
    BugRecord,
    BugSeverity,
    BugType,
    TicketComplexity,
    TicketMetrics,
    TicketRecord,
    TicketStatus,
)

logger = logging.getLogger(__name__)

DELIVERY_DAYS_PER_TICKET = 1.0


def month_bounds(month: int, year: int) -> Tuple[date, date]:
    """Return ``(first day of month, first day of next month)``."""
    if not 1 <= month <= 12:
        raise DataValidationError(f"Invalid month {month}: expected a value between 1 and 12.")

    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def _in_window(value: date, start: date, end: date) -> bool:
    return start <= value < end


def aggregate_ticket_metrics(
    developer_id: str,
    month: int,
    year: int,
    tickets: Iterable[TicketRecord],
) -> TicketMetrics:
    """Aggregate delivery counters for one developer and month.

    Business logic:
    - Include a ticket when ``assigned_date`` is in the month, or when it is
      completed with a ``completed_date`` in the month.
    - A completed ticket is on time when ``completed_date <= due_date`` and an
      early delivery when strictly earlier. Late critical tickets are counted
      separately.
    - Each completed ticket adds a fixed 1.0 to ``total_delivery_days``; the
      real elapsed time is not measured.
    - Every included ticket with ``reopen_count > 0`` counts as reopened,
      whenever the reopen happened.
    """
    start, end = month_bounds(month, year)
    metrics = TicketMetrics()

    for ticket in tickets:
        if ticket.developer_id != developer_id:
            continue

        completed_in_month = (
            ticket.status is TicketStatus.COMPLETED
            and ticket.completed_date is not None
            and _in_window(ticket.completed_date, start, end)
        )
        if not (completed_in_month or _in_window(ticket.assigned_date, start, end)):
            continue

        metrics.total_tickets += 1

        if ticket.status is TicketStatus.COMPLETED and ticket.completed_date is not None:
            metrics.completed_tickets += 1

            if ticket.completed_date <= ticket.due_date:
                metrics.on_time_tickets += 1
                if ticket.completed_date < ticket.due_date:
                    metrics.early_deliveries += 1
            else:
                metrics.late_tickets += 1
                if ticket.complexity is TicketComplexity.CRITICAL:
                    metrics.late_critical_tickets += 1

            metrics.total_delivery_days += DELIVERY_DAYS_PER_TICKET

        if ticket.reopen_count > 0:
            metrics.reopened_tickets += 1

    logger.debug(
        "Aggregated ticket metrics",
        extra={
            "developer_id": developer_id,
            "month": month,
            "year": year,
            "total_tickets": metrics.total_tickets,
            "completed_tickets": metrics.completed_tickets,
        },
    )

    return metrics


def aggregate_bug_metrics(
    developer_id: str,
    month: int,
    year: int,
    bugs: Iterable[BugRecord],
) -> BugMetrics:
    """Aggregate bug counters for one developer and month.

    A bug falls in the month when the calendar date of ``created_at`` does; the
    timestamp is truncated as written, without converting time zones. Only
    developer-error bugs are bucketed by severity.
    """
    start, end = month_bounds(month, year)
    metrics = BugMetrics()
    severity_counts = metrics.dev_error_by_severity

    for bug in bugs:
        if bug.developer_id != developer_id:
            continue
        if not _in_window(bug.created_at.date(), start, end):
            continue

        metrics.total_bugs += 1

        if bug.bug_type is BugType.DEVELOPER_ERROR:
            metrics.developer_error_bugs += 1
            if bug.severity is BugSeverity.CRITICAL:
                severity_counts.critical += 1
            elif bug.severity is BugSeverity.HIGH:
                severity_counts.high += 1
            elif bug.severity is BugSeverity.MEDIUM:
                severity_counts.medium += 1
            else:
                severity_counts.low += 1
        elif bug.bug_type is BugType.CONCEPTUAL:
            metrics.conceptual_bugs += 1
        else:
            metrics.other_bugs += 1

    logger.debug(
        "Aggregated bug metrics",
        extra={
            "developer_id": developer_id,
            "month": month,
            "year": year,
            "total_bugs": metrics.total_bugs,
            "developer_error_bugs": metrics.developer_error_bugs,
        },
    )

    return metrics
