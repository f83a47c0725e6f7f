"""Report rendering for monthly KPIs.

This module provides utilities for:
- Formatting percentages and day counts with two decimals.
- Rendering a KPI as the ``Metric,Value`` CSV layout.
- Building a human-readable text report.
"""

from __future__ import annotations

import csv
import io
from typing import List, Optional, Tuple

from .kpi import TEAM_DEVELOPER_ID
from .models import MonthlyKPI

TEAM_LABEL = "All Developers (Team)"


def format_percent(value: float) -> str:
    """Format a 0-100 value as ``NN.NN%``."""
    return f"{value:.2f}%"


def format_days(value: float) -> str:
    """Format a day count as ``N.NN days``."""
    return f"{value:.2f} days"


def developer_label(kpi: MonthlyKPI) -> str:
    """Return the developer id, or the team label for the team aggregate."""
    if kpi.developer_id == TEAM_DEVELOPER_ID:
        return TEAM_LABEL
    return kpi.developer_id


def kpi_metric_rows(kpi: MonthlyKPI) -> List[Tuple[str, str]]:
    """Return ``(metric, value)`` pairs in report order.

    The trend row is present only when the KPI has a trend.
    """
    rows = [
        ("Total Tickets", str(kpi.tickets.total_tickets)),
        ("Completed Tickets", str(kpi.tickets.completed_tickets)),
        ("On-Time Tickets", str(kpi.tickets.on_time_tickets)),
        ("Late Tickets", str(kpi.tickets.late_tickets)),
        ("Reopened Tickets", str(kpi.tickets.reopened_tickets)),
        ("On-Time Rate", format_percent(kpi.on_time_rate)),
        ("Avg Delivery Time", format_days(kpi.avg_delivery_time)),
        ("Total Bugs", str(kpi.bugs.total_bugs)),
        ("Developer Error Bugs", str(kpi.bugs.developer_error_bugs)),
        ("Conceptual Bugs", str(kpi.bugs.conceptual_bugs)),
        ("Other Bugs", str(kpi.bugs.other_bugs)),
        ("Delivery Score", format_percent(kpi.delivery_score)),
        ("Quality Score", format_percent(kpi.quality_score)),
        ("Overall Score", format_percent(kpi.overall_score)),
    ]
    if kpi.trend is not None:
        rows.append(("Trend", kpi.trend.value))
    return rows


def format_kpi_csv(kpi: MonthlyKPI) -> str:
    """Render ``kpi`` as CSV text.

    Layout: a ``KPI Report`` title, period, developer and generation lines, a
    blank line, then a ``Metric,Value`` table.
    """
    buffer = io.StringIO()
    buffer.write("KPI Report\n")
    buffer.write(f"Period: {kpi.period_label}\n")
    buffer.write(f"Developer: {developer_label(kpi)}\n")
    buffer.write(f"Generated: {kpi.generated_at.isoformat()}\n\n")

    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Metric", "Value"])
    writer.writerows(kpi_metric_rows(kpi))

    return buffer.getvalue()


def generate_report(kpi: MonthlyKPI, developer_name: Optional[str] = None) -> str:
    """Generate a human-readable KPI report.

    Args:
        kpi: Computed monthly KPI.
        developer_name: Display name shown next to the developer id.

    Returns:
        Formatted multi-line text report.
    """
    label = developer_label(kpi)
    if developer_name:
        label = f"{developer_name} ({label})"

    trend = kpi.trend.value if kpi.trend is not None else "n/a"

    lines = [
        f"Developer: {label}",
        f"Period: {kpi.period_label}",
        "Monthly KPI Report",
        "",
        "1) Delivery",
        f"   Tickets: {kpi.tickets.total_tickets} total, {kpi.tickets.completed_tickets} completed",
        f"   On time: {kpi.tickets.on_time_tickets}, late: {kpi.tickets.late_tickets}, "
        f"reopened: {kpi.tickets.reopened_tickets}",
        f"   On-Time Rate: {format_percent(kpi.on_time_rate)}",
        f"   Avg Delivery Time: {format_days(kpi.avg_delivery_time)}",
        "",
        "2) Quality",
        f"   Bugs: {kpi.bugs.total_bugs} total",
        f"   Developer error: {kpi.bugs.developer_error_bugs}, conceptual: {kpi.bugs.conceptual_bugs}, "
        f"other: {kpi.bugs.other_bugs}",
        "",
        "3) Scores",
        f"   Delivery: {format_percent(kpi.delivery_score)}",
        f"   Quality: {format_percent(kpi.quality_score)}",
        f"   Overall: {format_percent(kpi.overall_score)}",
        f"   Trend: {trend}",
    ]

    return "\n".join(lines)


def format_history(history: List[MonthlyKPI]) -> str:
    """Render stored KPIs as one line per period, in the given order."""
    if not history:
        return "No stored KPI history."

    lines = ["KPI History"]
    for kpi in history:
        trend = kpi.trend.value if kpi.trend is not None else "n/a"
        lines.append(
            f"   {kpi.period_label}: overall {format_percent(kpi.overall_score)}, "
            f"delivery {format_percent(kpi.delivery_score)}, "
            f"quality {format_percent(kpi.quality_score)}, trend {trend}"
        )
    return "\n".join(lines)
