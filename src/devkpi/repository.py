"""In-memory record and KPI store.

The store is the only stateful piece of the project. It owns a single lock that
serialises reads and the KPI upsert, so at most one ``MonthlyKPI`` exists per
``(developer, month, year)``. Scoring code never touches the lock; it receives
plain lists from the store.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .errors import ConfigurationError, DataValidationError, NotFoundError
from .models import (
    BugRecord,
    Developer,
    MonthlyKPI,
    TicketRecord,
    parse_bug,
    parse_developer,
    parse_monthly_kpi,
    parse_ticket,
)
from .trend import TREND_WINDOW, select_prior_scores

logger = logging.getLogger(__name__)

KPIKey = Tuple[str, int, int]


class KPIStore:
    """Thread-safe in-memory repository for developers, records, and KPIs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._developers: Dict[str, Developer] = {}
        self._tickets: List[TicketRecord] = []
        self._bugs: List[BugRecord] = []
        self._kpis: Dict[KPIKey, MonthlyKPI] = {}

    def add_developer(self, developer: Developer) -> None:
        with self._lock:
            self._developers[developer.id] = developer

    def add_ticket(self, ticket: TicketRecord) -> None:
        with self._lock:
            self._tickets.append(ticket)

    def add_bug(self, bug: BugRecord) -> None:
        with self._lock:
            self._bugs.append(bug)

    def get_developer(self, developer_id: str) -> Developer:
        """Return the developer with ``developer_id``.

        Raises:
            NotFoundError: If no such developer exists.
        """
        with self._lock:
            developer = self._developers.get(developer_id)
        if developer is None:
            raise NotFoundError(f"Developer not found: {developer_id}")
        return developer

    def active_developers(self) -> List[Developer]:
        with self._lock:
            developers = [dev for dev in self._developers.values() if dev.is_active]
        return sorted(developers, key=lambda dev: dev.id)

    def tickets_for(self, developer_id: str) -> List[TicketRecord]:
        with self._lock:
            return [ticket for ticket in self._tickets if ticket.developer_id == developer_id]

    def bugs_for(self, developer_id: str) -> List[BugRecord]:
        with self._lock:
            return [bug for bug in self._bugs if bug.developer_id == developer_id]

    def previous_scores(
        self,
        developer_id: str,
        month: int,
        year: int,
        limit: int = TREND_WINDOW,
    ) -> List[float]:
        """Overall scores strictly before ``(month, year)``, most recent first."""
        with self._lock:
            history = list(self._kpis.values())
        return select_prior_scores(history, developer_id, month, year, limit=limit)

    def upsert_kpi(self, kpi: MonthlyKPI) -> MonthlyKPI:
        """Insert ``kpi`` or overwrite the stored KPI for the same period.

        An overwrite keeps the stored record's ``id``; a new record gets a fresh
        UUID unless ``kpi`` already carries one.
        """
        key = (kpi.developer_id, kpi.month, kpi.year)

        with self._lock:
            existing = self._kpis.get(key)
            if existing is not None:
                stored = replace(kpi, id=existing.id)
            else:
                stored = replace(kpi, id=kpi.id or str(uuid.uuid4()))
            self._kpis[key] = stored

        logger.info(
            "Stored monthly KPI",
            extra={
                "developer_id": kpi.developer_id,
                "month": kpi.month,
                "year": kpi.year,
                "kpi_id": stored.id,
                "updated": existing is not None,
            },
        )
        return stored

    def get_kpi(self, developer_id: str, month: int, year: int) -> Optional[MonthlyKPI]:
        with self._lock:
            return self._kpis.get((developer_id, month, year))

    def kpi_history(self, developer_id: str) -> List[MonthlyKPI]:
        """All stored KPIs of a developer, most recent period first."""
        with self._lock:
            history = [kpi for kpi in self._kpis.values() if kpi.developer_id == developer_id]
        return sorted(history, key=lambda kpi: (kpi.year, kpi.month), reverse=True)


def populate_store(
    store: KPIStore,
    developers: Iterable[dict],
    tickets: Iterable[dict],
    bugs: Iterable[dict],
    kpis: Iterable[dict] = (),
    lenient: bool = False,
) -> KPIStore:
    """Parse camelCase payloads and add them to ``store``.

    ``lenient`` is forwarded to :func:`devkpi.models.parse_bug`.
    """
    for payload in developers:
        store.add_developer(parse_developer(payload))
    for payload in tickets:
        store.add_ticket(parse_ticket(payload))
    for payload in bugs:
        store.add_bug(parse_bug(payload, lenient=lenient))
    for payload in kpis:
        store.upsert_kpi(parse_monthly_kpi(payload))
    return store


def load_store(path: Union[str, Path], lenient: bool = False) -> KPIStore:
    """Build a store from a JSON records file.

    The file holds an object with ``developers``, ``tickets``, ``bugs`` and an
    optional ``kpis`` history list.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
        DataValidationError: If any record is invalid.
    """
    records_path = Path(path)

    try:
        payload = json.loads(records_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Failed to read records file '{records_path}': {exc}") from exc
    except ValueError as exc:
        raise ConfigurationError(f"Failed to parse records file '{records_path}': {exc}") from exc

    if not isinstance(payload, dict):
        raise DataValidationError(f"Records file '{records_path}' must contain a JSON object.")

    store = populate_store(
        KPIStore(),
        developers=payload.get("developers", []),
        tickets=payload.get("tickets", []),
        bugs=payload.get("bugs", []),
        kpis=payload.get("kpis", []),
        lenient=lenient,
    )

    logger.info(
        "Loaded records file",
        extra={
            "path": str(records_path),
            "developers": len(payload.get("developers", [])),
            "tickets": len(payload.get("tickets", [])),
            "bugs": len(payload.get("bugs", [])),
        },
    )
    return store
