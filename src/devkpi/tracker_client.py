"""Ticket-tracker REST API client for KPI record retrieval."""

from __future__ import annotations

import time
from typing import Any, Dict, Iterable, List, Optional

import requests

from .config import TrackerSettings
from .errors import ApiError, AuthenticationError, DataValidationError
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
from .repository import KPIStore


class TrackerClient:
    """Small, typed client for the tracker's developer, ticket, and bug APIs."""

    _PAGE_SIZE = 100
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, settings: TrackerSettings, timeout_seconds: int = 30, lenient: bool = False) -> None:
        """Initialize an authenticated tracker API client.

        Args:
            settings: Validated tracker URL and token.
            timeout_seconds: Per-request timeout in seconds.
            lenient: Forwarded to :func:`devkpi.models.parse_bug`.
        """
        self._settings = settings
        self._timeout_seconds = timeout_seconds
        self._lenient = lenient
        self._base_url = f"{settings.base_url}/api"

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "Authorization": f"Bearer {settings.token}",
            }
        )

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below ``/api``."""
        return f"{self._base_url}/{path.lstrip('/')}"

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute a GET request with retry logic for 429/5xx responses.

        Raises:
            AuthenticationError: If the tracker rejects the token (401/403).
            ApiError: If the request repeatedly fails, returns HTTP >= 400,
                or does not return a JSON object.
        """
        url = self._build_url(path)
        query = dict(params or {})
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.get(url, params=query, timeout=self._timeout_seconds)
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise ApiError(f"Tracker request failed after retries: GET {url}") from exc
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code in (401, 403):
                raise AuthenticationError(f"Tracker rejected the API token: GET {url} returned {status_code}")

            if status_code >= 400:
                raise ApiError(f"Tracker API request failed: GET {url} returned {status_code} - {response.text}")

            try:
                payload = response.json()
            except ValueError as exc:
                raise ApiError(f"Tracker API returned invalid JSON: GET {url}") from exc

            if not isinstance(payload, dict):
                raise ApiError(f"Tracker API returned unexpected payload shape: GET {url}")

            return payload

        raise ApiError(f"Tracker request failed after retries: GET {url}") from last_error

    def _list_paginated(self, path: str) -> List[Dict[str, Any]]:
        """Collect all items of a collection endpoint using ``limit``/``offset`` paging."""
        items: List[Dict[str, Any]] = []
        offset = 0

        while True:
            payload = self._get_json(path, params={"limit": self._PAGE_SIZE, "offset": offset})
            page_items = payload.get("items", [])
            if not isinstance(page_items, list):
                raise ApiError(f"Tracker API returned a non-list 'items' field: GET {self._build_url(path)}")

            items.extend(page_items)

            if len(page_items) < self._PAGE_SIZE:
                break

            offset += self._PAGE_SIZE

        return items

    def _parse_all(self, parser, items: Iterable[Dict[str, Any]], path: str) -> list:
        try:
            return [parser(item) for item in items]
        except DataValidationError as exc:
            raise ApiError(f"Tracker API returned an invalid record from '{path}': {exc}") from exc

    def list_developers(self) -> List[Developer]:
        """List all developers known to the tracker."""
        return self._parse_all(parse_developer, self._list_paginated("developers"), "developers")

    def list_tickets(self, developer_id: str) -> List[TicketRecord]:
        """List every ticket assigned to ``developer_id``."""
        path = f"developers/{developer_id}/tickets"
        return self._parse_all(parse_ticket, self._list_paginated(path), path)

    def list_bugs(self, developer_id: str) -> List[BugRecord]:
        """List every bug charged to ``developer_id``."""
        path = f"developers/{developer_id}/bugs"
        return self._parse_all(
            lambda item: parse_bug(item, lenient=self._lenient),
            self._list_paginated(path),
            path,
        )

    def list_kpi_history(self, developer_id: str) -> List[MonthlyKPI]:
        """List the stored monthly KPIs of ``developer_id``."""
        path = f"developers/{developer_id}/kpis"
        return self._parse_all(parse_monthly_kpi, self._list_paginated(path), path)

    def load_store(self, developer_ids: Optional[Iterable[str]] = None) -> KPIStore:
        """Fetch developers and their records into a new ``KPIStore``.

        Args:
            developer_ids: Restrict record fetching to these developers. All
                developers are still registered so existence checks work.
        """
        store = KPIStore()
        developers = self.list_developers()
        for developer in developers:
            store.add_developer(developer)

        wanted = set(developer_ids) if developer_ids is not None else {dev.id for dev in developers}

        for developer in developers:
            if developer.id not in wanted:
                continue
            for ticket in self.list_tickets(developer.id):
                store.add_ticket(ticket)
            for bug in self.list_bugs(developer.id):
                store.add_bug(bug)
            for kpi in self.list_kpi_history(developer.id):
                store.upsert_kpi(kpi)

        return store
