"""Domain models for developer KPI computation.

Records are immutable for the duration of a computation. Enumerations are
closed: every external string maps to exactly one member, and anything else is
rejected with a dedicated :mod:`devkpi.errors` exception.

The ``parse_*`` helpers accept the camelCase payload shape used by the tracker
API and by JSON record files.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Type, TypeVar

from .errors import (
    DataValidationError,
    InvalidBugTypeError,
    InvalidComplexityError,
    InvalidSeverityError,
    InvalidStatusError,
    InvalidTrendError,
)

logger = logging.getLogger(__name__)

_E = TypeVar("_E", bound=Enum)

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def _parse_enum(enum_cls: Type[_E], value: Any, error_cls: Type[DataValidationError], label: str) -> _E:
    """Map an external string onto ``enum_cls``.

    Matching ignores surrounding whitespace and case, and accepts ``-`` in place
    of ``_``. Members are returned unchanged.
    """
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        raise error_cls(f"Invalid {label}: {value!r}")

    normalized = value.strip().lower().replace("-", "_")
    for member in enum_cls:
        if member.value == normalized:
            return member

    raise error_cls(f"Invalid {label}: {value}")


class TicketStatus(str, Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    REOPENED = "reopened"

    @classmethod
    def parse(cls, value: Any) -> "TicketStatus":
        return _parse_enum(cls, value, InvalidStatusError, "ticket status")


class TicketComplexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: Any) -> "TicketComplexity":
        return _parse_enum(cls, value, InvalidComplexityError, "ticket complexity")


class BugSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: Any) -> "BugSeverity":
        return _parse_enum(cls, value, InvalidSeverityError, "bug severity")


class BugType(str, Enum):
    """Root cause of a bug. Only developer errors and conceptual bugs are penalized."""

    DEVELOPER_ERROR = "developer_error"
    CONCEPTUAL = "conceptual"
    REQUIREMENT_CHANGE = "requirement_change"
    ENVIRONMENT = "environment"
    THIRD_PARTY = "third_party"

    @classmethod
    def parse(cls, value: Any) -> "BugType":
        return _parse_enum(cls, value, InvalidBugTypeError, "bug type")


class KPITrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"

    @classmethod
    def parse(cls, value: Any) -> "KPITrend":
        return _parse_enum(cls, value, InvalidTrendError, "KPI trend")


@dataclass(frozen=True, slots=True)
class Developer:
    """Represents a developer whose KPIs are tracked."""

    id: str
    name: str
    email: str = ""
    role: str = "mid"
    team: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class TicketRecord:
    """Represents the ticket fields required for delivery aggregation."""

    id: str
    developer_id: str
    status: TicketStatus
    complexity: TicketComplexity
    assigned_date: date
    due_date: date
    completed_date: Optional[date] = None
    reopen_count: int = 0


@dataclass(frozen=True, slots=True)
class BugRecord:
    """Represents a bug charged to the developer who introduced it."""

    id: str
    developer_id: str
    severity: BugSeverity
    bug_type: BugType
    created_at: datetime
    is_resolved: bool = False


@dataclass(frozen=True, slots=True)
class BugPenalties:
    """Points deducted per developer-error bug, by severity."""

    critical: float = 15.0
    high: float = 10.0
    medium: float = 5.0
    low: float = 2.0


@dataclass(frozen=True, slots=True)
class ScoringConfig:
    """Weights and penalties for the scoring model."""

    delivery_weight: float = 0.5
    quality_weight: float = 0.5
    bug_penalties: BugPenalties = field(default_factory=BugPenalties)


@dataclass(slots=True)
class SeverityCounts:
    """Developer-error bug counts by severity."""

    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


@dataclass(slots=True)
class TicketMetrics:
    """Ticket counters aggregated for one developer and month."""

    total_tickets: int = 0
    completed_tickets: int = 0
    on_time_tickets: int = 0
    late_tickets: int = 0
    early_deliveries: int = 0
    late_critical_tickets: int = 0
    reopened_tickets: int = 0
    total_delivery_days: float = 0.0


@dataclass(slots=True)
class BugMetrics:
    """Bug counters aggregated for one developer and month."""

    total_bugs: int = 0
    developer_error_bugs: int = 0
    conceptual_bugs: int = 0
    other_bugs: int = 0
    dev_error_by_severity: SeverityCounts = field(default_factory=SeverityCounts)


@dataclass(frozen=True, slots=True)
class MonthlyKPI:
    """Represents the computed KPI of one developer for one calendar month."""

    developer_id: str
    month: int
    year: int
    tickets: TicketMetrics
    bugs: BugMetrics
    on_time_rate: float
    avg_delivery_time: float
    delivery_score: float
    quality_score: float
    overall_score: float
    trend: Optional[KPITrend]
    generated_at: datetime
    id: Optional[str] = None

    @property
    def period_label(self) -> str:
        return f"{MONTH_NAMES[self.month - 1]} {self.year}"


def _require(payload: Mapping[str, Any], key: str, record: str) -> Any:
    value = payload.get(key)
    if value is None or value == "":
        raise DataValidationError(f"{record} payload is missing required field '{key}': {dict(payload)}")
    return value


def parse_date(value: Any, field_name: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise DataValidationError(f"Invalid date for '{field_name}': {value!r}") from exc


def parse_timestamp(value: Any, field_name: str) -> datetime:
    """Parse an ISO8601 timestamp, keeping the offset it was written with."""
    if isinstance(value, datetime):
        return value
    text = str(value)
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise DataValidationError(f"Invalid timestamp for '{field_name}': {value!r}") from exc


def _parse_count(value: Any, field_name: str) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError) as exc:
        raise DataValidationError(f"Invalid integer for '{field_name}': {value!r}") from exc
    if count < 0:
        raise DataValidationError(f"'{field_name}' must not be negative: {count}")
    return count


def parse_developer(payload: Mapping[str, Any]) -> Developer:
    """Build a ``Developer`` from a tracker payload."""
    return Developer(
        id=str(_require(payload, "id", "Developer")),
        name=str(_require(payload, "name", "Developer")),
        email=str(payload.get("email") or ""),
        role=str(payload.get("role") or "mid"),
        team=payload.get("team"),
        is_active=bool(payload.get("isActive", True)),
    )


def parse_ticket(payload: Mapping[str, Any]) -> TicketRecord:
    """Build a ``TicketRecord`` from a tracker payload.

    Raises:
        InvalidStatusError: If ``status`` is not a known ticket status.
        InvalidComplexityError: If ``complexity`` is not a known complexity.
        DataValidationError: If required fields are missing or malformed.
    """
    completed_raw = payload.get("completedDate")

    return TicketRecord(
        id=str(_require(payload, "id", "Ticket")),
        developer_id=str(_require(payload, "developerId", "Ticket")),
        status=TicketStatus.parse(_require(payload, "status", "Ticket")),
        complexity=TicketComplexity.parse(_require(payload, "complexity", "Ticket")),
        assigned_date=parse_date(_require(payload, "assignedDate", "Ticket"), "assignedDate"),
        due_date=parse_date(_require(payload, "dueDate", "Ticket"), "dueDate"),
        completed_date=parse_date(completed_raw, "completedDate") if completed_raw else None,
        reopen_count=_parse_count(payload.get("reopenCount", 0), "reopenCount"),
    )


def parse_bug(payload: Mapping[str, Any], lenient: bool = False) -> BugRecord:
    """Build a ``BugRecord`` from a tracker payload.

    Unknown severity or bug type strings are rejected by default. With
    ``lenient=True`` they fall back to ``medium`` and ``developer_error``
    respectively and a warning is logged for each defaulted field.

    Raises:
        InvalidSeverityError: Unknown severity and ``lenient`` is false.
        InvalidBugTypeError: Unknown bug type and ``lenient`` is false.
        DataValidationError: If required fields are missing or malformed.
    """
    bug_id = str(_require(payload, "id", "Bug"))
    raw_severity = _require(payload, "severity", "Bug")
    raw_type = _require(payload, "bugType", "Bug")

    try:
        severity = BugSeverity.parse(raw_severity)
    except InvalidSeverityError:
        if not lenient:
            raise
        logger.warning(
            "Defaulting unknown bug severity to medium",
            extra={"bug_id": bug_id, "severity": raw_severity},
        )
        severity = BugSeverity.MEDIUM

    try:
        bug_type = BugType.parse(raw_type)
    except InvalidBugTypeError:
        if not lenient:
            raise
        logger.warning(
            "Defaulting unknown bug type to developer_error",
            extra={"bug_id": bug_id, "bug_type": raw_type},
        )
        bug_type = BugType.DEVELOPER_ERROR

    return BugRecord(
        id=bug_id,
        developer_id=str(_require(payload, "developerId", "Bug")),
        severity=severity,
        bug_type=bug_type,
        created_at=parse_timestamp(_require(payload, "createdAt", "Bug"), "createdAt"),
        is_resolved=bool(payload.get("isResolved", False)),
    )


def parse_monthly_kpi(payload: Mapping[str, Any]) -> MonthlyKPI:
    """Build a previously stored ``MonthlyKPI`` from its camelCase payload.

    Counter fields missing from the payload default to ``0``.
    """

    def _count(key: str) -> int:
        return _parse_count(payload.get(key, 0), key)

    def _score(key: str, default: float = 0.0) -> float:
        value = payload.get(key, default)
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise DataValidationError(f"Invalid number for '{key}': {value!r}") from exc

    month = _parse_count(_require(payload, "month", "KPI"), "month")
    if not 1 <= month <= 12:
        raise DataValidationError(f"Invalid month in KPI payload: {month}")

    raw_trend = payload.get("trend")
    raw_generated = payload.get("generatedAt")
    completed = _count("completedTickets")

    return MonthlyKPI(
        id=payload.get("id"),
        developer_id=str(_require(payload, "developerId", "KPI")),
        month=month,
        year=_parse_count(_require(payload, "year", "KPI"), "year"),
        tickets=TicketMetrics(
            total_tickets=_count("totalTickets"),
            completed_tickets=completed,
            on_time_tickets=_count("onTimeTickets"),
            late_tickets=_count("lateTickets"),
            reopened_tickets=_count("reopenedTickets"),
            total_delivery_days=float(completed),
        ),
        bugs=BugMetrics(
            total_bugs=_count("totalBugs"),
            developer_error_bugs=_count("developerErrorBugs"),
            conceptual_bugs=_count("conceptualBugs"),
            other_bugs=_count("otherBugs"),
        ),
        on_time_rate=_score("onTimeRate", 100.0),
        avg_delivery_time=_score("avgDeliveryTime"),
        delivery_score=_score("deliveryScore"),
        quality_score=_score("qualityScore"),
        overall_score=float(_require(payload, "overallScore", "KPI")),
        trend=KPITrend.parse(raw_trend) if raw_trend else None,
        generated_at=(
            parse_timestamp(raw_generated, "generatedAt")
            if raw_generated
            else datetime.fromtimestamp(0, tz=timezone.utc)
        ),
    )

