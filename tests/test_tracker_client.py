"""Tests for the tracker API client behavior with mocked HTTP."""

import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import requests

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from devkpi.config import TrackerSettings
from devkpi.errors import ApiError, AuthenticationError
from devkpi.models import TicketStatus
from devkpi.tracker_client import TrackerClient


def _build_client(lenient: bool = False) -> TrackerClient:
    settings = TrackerSettings(base_url="https://tracker.example.com", token="secret-token")
    return TrackerClient(settings=settings, lenient=lenient)


def _response(status_code: int, payload: dict | None = None, text: str = "", headers: dict | None = None):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {}
    response.json.return_value = payload if payload is not None else {}
    return response


def _developer_item(developer_id: str) -> dict:
    return {"id": developer_id, "name": developer_id.title(), "isActive": True}


def _ticket_item(ticket_id: str, developer_id: str = "dev-1") -> dict:
    return {
        "id": ticket_id,
        "developerId": developer_id,
        "status": "completed",
        "complexity": "medium",
        "assignedDate": "2026-03-02",
        "dueDate": "2026-03-10",
        "completedDate": "2026-03-09",
    }


def _bug_item(bug_id: str, severity: str = "high", developer_id: str = "dev-1") -> dict:
    return {
        "id": bug_id,
        "developerId": developer_id,
        "severity": severity,
        "bugType": "developer_error",
        "createdAt": "2026-03-04T08:30:00Z",
    }


def test_session_sends_bearer_token():
    """Verify the client authenticates every request with the configured token."""
    client = _build_client()

    assert client._session.headers["Authorization"] == "Bearer secret-token"
    assert client._build_url("/developers") == "https://tracker.example.com/api/developers"


def test_get_json_retries_on_429_and_succeeds():
    """Verify _get_json retries after HTTP 429 and eventually returns JSON payload."""
    client = _build_client()
    first = _response(429, payload={"items": []}, headers={"Retry-After": "2"})
    second = _response(200, payload={"items": [{"id": "dev-1"}]})

    client._session.get = Mock(side_effect=[first, second])

    with patch("devkpi.tracker_client.time.sleep") as sleep_mock:
        payload = client._get_json("developers")

    assert payload == {"items": [{"id": "dev-1"}]}
    assert client._session.get.call_count == 2
    sleep_mock.assert_called_once_with(2)


def test_get_json_retries_on_5xx_and_raises_after_max_retries():
    """Verify _get_json retries retryable server errors and raises ApiError after limit."""
    client = _build_client()
    server_error = _response(503, payload={}, text="service unavailable")
    client._session.get = Mock(side_effect=[server_error] * client._MAX_RETRIES)

    with patch("devkpi.tracker_client.time.sleep") as sleep_mock:
        with pytest.raises(ApiError):
            client._get_json("developers")

    assert client._session.get.call_count == client._MAX_RETRIES
    assert sleep_mock.call_count == client._MAX_RETRIES - 1


def test_get_json_retries_connection_errors_with_exponential_backoff():
    """Verify transport failures are retried with 1, 2, 4 ... second sleeps."""
    client = _build_client()
    client._session.get = Mock(side_effect=requests.ConnectionError("boom"))

    with patch("devkpi.tracker_client.time.sleep") as sleep_mock:
        with pytest.raises(ApiError):
            client._get_json("developers")

    assert [call.args[0] for call in sleep_mock.call_args_list] == [1, 2, 4, 8]


def test_get_json_unauthorized_raises_authentication_error():
    """Verify HTTP 401 maps to AuthenticationError without retrying."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(401, text="unauthorized"))

    with pytest.raises(AuthenticationError):
        client._get_json("developers")

    assert client._session.get.call_count == 1


def test_get_json_not_found_raises_api_error():
    """Verify non-retryable HTTP errors raise ApiError."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(404, text="missing"))

    with pytest.raises(ApiError):
        client._get_json("developers/ghost/tickets")


def test_extract_backoff_seconds_caps_retry_after():
    """Verify Retry-After is honored but capped, and invalid headers fall back to exponential backoff."""
    client = _build_client()

    assert client._extract_backoff_seconds(_response(429, headers={"Retry-After": "120"}), 1) == 30
    assert client._extract_backoff_seconds(_response(429, headers={"Retry-After": "soon"}), 3) == 4


def test_list_tickets_uses_pagination_until_final_partial_page():
    """Verify ticket listing paginates using limit/offset and aggregates all pages."""
    client = _build_client()

    first_page = {"items": [_ticket_item(f"t-{i}") for i in range(1, 101)]}
    second_page = {"items": [_ticket_item("t-101"), _ticket_item("t-102")]}

    get_json_mock = Mock(side_effect=[first_page, second_page])
    client._get_json = get_json_mock

    tickets = client.list_tickets("dev-1")

    assert len(tickets) == 102
    assert tickets[0].id == "t-1"
    assert tickets[-1].status is TicketStatus.COMPLETED
    assert get_json_mock.call_count == 2

    first_call = get_json_mock.call_args_list[0]
    second_call = get_json_mock.call_args_list[1]
    assert first_call.args[0] == "developers/dev-1/tickets"
    assert first_call.kwargs["params"] == {"limit": client._PAGE_SIZE, "offset": 0}
    assert second_call.kwargs["params"] == {"limit": client._PAGE_SIZE, "offset": client._PAGE_SIZE}


def test_list_bugs_invalid_record_raises_api_error():
    """Verify a strict client rejects bugs with unknown severities as an API error."""
    client = _build_client()
    client._get_json = Mock(return_value={"items": [_bug_item("b-1", severity="blocker")]})

    with pytest.raises(ApiError):
        client.list_bugs("dev-1")


def test_list_bugs_lenient_defaults_unknown_severity():
    """Verify a lenient client keeps bugs with unknown severities."""
    client = _build_client(lenient=True)
    client._get_json = Mock(return_value={"items": [_bug_item("b-1", severity="blocker")]})

    bugs = client.list_bugs("dev-1")

    assert bugs[0].severity.value == "medium"


def test_list_paginated_rejects_non_list_items():
    """Verify a malformed collection payload raises ApiError."""
    client = _build_client()
    client._get_json = Mock(return_value={"items": {"id": "dev-1"}})

    with pytest.raises(ApiError):
        client.list_developers()


def test_load_store_fetches_records_only_for_requested_developers():
    """Verify load_store registers every developer but fetches records for the requested ones."""
    client = _build_client()
    client._get_json = Mock(
        side_effect=[
            {"items": [_developer_item("dev-1"), _developer_item("dev-2")]},
            {"items": [_ticket_item("t-1")]},
            {"items": [_bug_item("b-1")]},
            {"items": [{"id": "k-1", "developerId": "dev-1", "month": 2, "year": 2026, "overallScore": 80}]},
        ]
    )

    store = client.load_store(developer_ids=["dev-1"])

    assert [dev.id for dev in store.active_developers()] == ["dev-1", "dev-2"]
    assert len(store.tickets_for("dev-1")) == 1
    assert len(store.bugs_for("dev-1")) == 1
    assert store.previous_scores("dev-1", 3, 2026) == [80.0]
    assert store.tickets_for("dev-2") == []
    requested_paths = [call.args[0] for call in client._get_json.call_args_list]
    assert requested_paths == [
        "developers",
        "developers/dev-1/tickets",
        "developers/dev-1/bugs",
        "developers/dev-1/kpis",
    ]
