"""Tests for enumeration mapping and record payload parsing."""

import logging
import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from devkpi.errors import (
    DataValidationError,
    InvalidBugTypeError,
    InvalidComplexityError,
    InvalidSeverityError,
    InvalidStatusError,
    InvalidTrendError,
)
from devkpi.models import (
    BugSeverity,
    BugType,
    KPITrend,
    TicketComplexity,
    TicketStatus,
    parse_bug,
    parse_developer,
    parse_monthly_kpi,
    parse_ticket,
)


def _ticket_payload(**overrides) -> dict:
    payload = {
        "id": "t-1",
        "developerId": "dev-1",
        "status": "completed",
        "complexity": "critical",
        "assignedDate": "2026-03-01",
        "dueDate": "2026-03-10",
        "completedDate": "2026-03-09",
        "reopenCount": 2,
    }
    payload.update(overrides)
    return payload


def _bug_payload(**overrides) -> dict:
    payload = {
        "id": "b-1",
        "developerId": "dev-1",
        "severity": "high",
        "bugType": "developer_error",
        "createdAt": "2026-03-05T10:00:00Z",
        "isResolved": False,
    }
    payload.update(overrides)
    return payload


def test_enum_parse_ignores_case_whitespace_and_hyphens():
    """Verify external strings map onto members case-insensitively, with '-' accepted for '_'."""
    assert TicketStatus.parse("In-Progress") is TicketStatus.IN_PROGRESS
    assert TicketStatus.parse(" completed ") is TicketStatus.COMPLETED
    assert TicketComplexity.parse("CRITICAL") is TicketComplexity.CRITICAL
    assert BugSeverity.parse("Low") is BugSeverity.LOW
    assert BugType.parse("third-party") is BugType.THIRD_PARTY
    assert KPITrend.parse("Improving") is KPITrend.IMPROVING


def test_enum_values_are_the_external_strings():
    """Verify each member's value is its external string representation."""
    assert TicketStatus.IN_PROGRESS.value == "in_progress"
    assert BugType.DEVELOPER_ERROR.value == "developer_error"
    assert KPITrend.DECLINING.value == "declining"


@pytest.mark.parametrize(
    "enum_cls, error_cls",
    [
        (TicketStatus, InvalidStatusError),
        (TicketComplexity, InvalidComplexityError),
        (BugSeverity, InvalidSeverityError),
        (BugType, InvalidBugTypeError),
        (KPITrend, InvalidTrendError),
    ],
)
def test_enum_parse_rejects_unknown_values_with_dedicated_error(enum_cls, error_cls):
    """Verify unknown strings raise the enum's own error, which is a DataValidationError."""
    with pytest.raises(error_cls):
        enum_cls.parse("bogus")
    with pytest.raises(DataValidationError):
        enum_cls.parse(None)


def test_parse_ticket_builds_typed_record():
    """Verify ticket payloads produce typed records with parsed dates."""
    ticket = parse_ticket(_ticket_payload())

    assert ticket.status is TicketStatus.COMPLETED
    assert ticket.complexity is TicketComplexity.CRITICAL
    assert ticket.assigned_date == date(2026, 3, 1)
    assert ticket.completed_date == date(2026, 3, 9)
    assert ticket.reopen_count == 2


def test_parse_ticket_without_completed_date():
    """Verify a missing completedDate becomes None."""
    ticket = parse_ticket(_ticket_payload(status="assigned", completedDate=None))

    assert ticket.completed_date is None


def test_parse_ticket_rejects_unknown_status_and_bad_dates():
    """Verify strict parsing fails for unknown statuses, malformed dates, and negative reopen counts."""
    with pytest.raises(InvalidStatusError):
        parse_ticket(_ticket_payload(status="done"))
    with pytest.raises(DataValidationError):
        parse_ticket(_ticket_payload(dueDate="03/10/2026"))
    with pytest.raises(DataValidationError):
        parse_ticket(_ticket_payload(reopenCount=-1))
    with pytest.raises(DataValidationError):
        parse_ticket(_ticket_payload(developerId=""))


def test_parse_bug_keeps_written_offset():
    """Verify bug timestamps keep their offset so the written date is preserved."""
    bug = parse_bug(_bug_payload(createdAt="2026-03-31T23:30:00-05:00"))

    assert bug.created_at.date() == date(2026, 3, 31)
    assert bug.created_at.utcoffset() == timedelta(hours=-5)
    assert bug.severity is BugSeverity.HIGH
    assert bug.bug_type is BugType.DEVELOPER_ERROR


def test_parse_bug_strict_rejects_unknown_severity_and_type():
    """Verify strict bug parsing raises dedicated errors."""
    with pytest.raises(InvalidSeverityError):
        parse_bug(_bug_payload(severity="blocker"))
    with pytest.raises(InvalidBugTypeError):
        parse_bug(_bug_payload(bugType="typo"))


def test_parse_bug_lenient_defaults_and_logs_warning(caplog):
    """Verify lenient parsing defaults to medium/developer_error and logs each fallback."""
    with caplog.at_level(logging.WARNING, logger="devkpi.models"):
        bug = parse_bug(_bug_payload(severity="blocker", bugType="typo"), lenient=True)

    assert bug.severity is BugSeverity.MEDIUM
    assert bug.bug_type is BugType.DEVELOPER_ERROR
    assert len(caplog.records) == 2


def test_parse_developer_defaults_active():
    """Verify developers are active unless the payload says otherwise."""
    assert parse_developer({"id": "dev-1", "name": "Ada"}).is_active is True
    assert parse_developer({"id": "dev-1", "name": "Ada", "isActive": False}).is_active is False


def test_parse_monthly_kpi_reads_history_record():
    """Verify stored KPI payloads parse with trend and period label."""
    kpi = parse_monthly_kpi(
        {
            "id": "k-1",
            "developerId": "dev-1",
            "month": 2,
            "year": 2026,
            "completedTickets": 4,
            "overallScore": 72.5,
            "trend": "stable",
            "generatedAt": "2026-03-01T00:00:00Z",
        }
    )

    assert kpi.id == "k-1"
    assert kpi.overall_score == 72.5
    assert kpi.trend is KPITrend.STABLE
    assert kpi.tickets.completed_tickets == 4
    assert kpi.period_label == "February 2026"


def test_parse_monthly_kpi_rejects_invalid_month():
    """Verify stored KPIs with an out-of-range month are rejected."""
    with pytest.raises(DataValidationError):
        parse_monthly_kpi({"developerId": "dev-1", "month": 13, "year": 2026, "overallScore": 1.0})
