"""
Tests for Datadog Incidents Client
"""

from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from ..errors import FetchError
from ..tools.datadog_client import DatadogClient, PAGE_SIZE


def incident_entry(public_id, created, resolved=None, **attributes):
    return {
        "type": "incidents",
        "id": f"uuid-{public_id}",
        "attributes": {
            "public_id": public_id,
            "title": f"Incident {public_id}",
            "created": created,
            "resolved": resolved,
            "customer_impact_scope": "Checkout degraded",
            "customer_impact_duration": 5400,
            "fields": {
                "severity": {"type": "dropdown", "value": "SEV-1"},
                "root_cause": {"type": "textbox", "value": "Bad index"},
                "summary": {"type": "textbox", "value": "Index rebuilt"},
            },
            **attributes,
        },
        "relationships": {
            "commander_user": {"data": {"type": "users", "id": "user-1"}},
        },
    }


def search_body(*entries):
    return {
        "data": {
            "type": "incidents_search_results",
            "attributes": {"incidents": [{"data": e} for e in entries]},
        },
        "included": [
            {"type": "users", "id": "user-1", "attributes": {"name": "Jane Doe", "email": "jane@example.com"}},
        ],
    }


def make_client(handler):
    return DatadogClient(
        api_key="api",
        app_key="app",
        transport=httpx.MockTransport(handler),
    )


class TestFetchIncidents:
    """Tests for incident search"""

    def test_request_shape(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=search_body())

        make_client(handler).fetch_incidents(["sre"], date(2024, 1, 8), date(2024, 1, 14))

        request = seen[0]
        assert request.url.host == "api.datadoghq.com"
        assert request.url.path == "/api/v2/incidents/search"
        assert request.headers["DD-API-KEY"] == "api"
        assert request.headers["DD-APPLICATION-KEY"] == "app"
        # until is inclusive: the search ends at the start of the next day
        assert request.url.params["query"] == (
            "created_before:1705276800 created_after:1704672000 teams:sre"
        )
        assert request.url.params["filter[field_type]"] == "all"
        assert request.url.params["sort"] == "created"

    def test_maps_incident(self):
        body = search_body(incident_entry(
            12,
            "2024-01-10T10:00:00+00:00",
            "2024-01-10T11:00:00+00:00",
        ))
        client = make_client(lambda request: httpx.Response(200, json=body))

        incidents = client.fetch_incidents(["sre"], date(2024, 1, 8), date(2024, 1, 14))

        assert len(incidents) == 1
        incident = incidents[0]
        assert incident.id == "#incident-12"
        assert incident.title == "Incident 12"
        assert incident.link == "https://app.datadoghq.com/incidents/12"
        assert incident.severity == "SEV-1"
        assert incident.commander == "Jane Doe"
        assert incident.commander_email == "jane@example.com"
        assert incident.root_cause == "Bad index"
        assert incident.summary == "Index rebuilt"
        assert incident.customer_impact_scope == "Checkout degraded"
        assert incident.customer_impact_duration == timedelta(hours=1, minutes=30)
        assert incident.created_at == datetime(2024, 1, 10, 10, tzinfo=timezone.utc)
        assert incident.resolved_at == datetime(2024, 1, 10, 11, tzinfo=timezone.utc)

    def test_open_incident_has_no_resolution(self):
        body = search_body(incident_entry(3, "2024-01-10T10:00:00+00:00"))
        client = make_client(lambda request: httpx.Response(200, json=body))

        incident = client.fetch_incidents(["sre"], date(2024, 1, 8), date(2024, 1, 14))[0]

        assert incident.is_open

    def test_teams_merged_and_sorted(self):
        bodies = {
            "sre": search_body(
                incident_entry(2, "2024-01-11T10:00:00+00:00", "2024-01-11T11:00:00+00:00"),
                incident_entry(1, "2024-01-09T10:00:00+00:00", "2024-01-09T11:00:00+00:00"),
            ),
            "db": search_body(
                incident_entry(1, "2024-01-09T10:00:00+00:00", "2024-01-09T11:00:00+00:00"),
                incident_entry(3, "2024-01-10T10:00:00+00:00", "2024-01-10T11:00:00+00:00"),
            ),
        }

        def handler(request):
            team = request.url.params["query"].rsplit("teams:", 1)[1]
            return httpx.Response(200, json=bodies[team])

        incidents = make_client(handler).fetch_incidents(
            ["sre", "db"], date(2024, 1, 8), date(2024, 1, 14)
        )

        assert [i.id for i in incidents] == ["#incident-1", "#incident-3", "#incident-2"]

    def test_paginates(self):
        first = [
            incident_entry(n, "2024-01-10T10:00:00+00:00", "2024-01-10T11:00:00+00:00")
            for n in range(1, PAGE_SIZE + 1)
        ]
        last = [incident_entry(PAGE_SIZE + 1, "2024-01-10T10:00:00+00:00", "2024-01-10T11:00:00+00:00")]
        offsets = []

        def handler(request):
            offset = int(request.url.params["page[offset]"])
            offsets.append(offset)
            return httpx.Response(200, json=search_body(*(first if offset == 0 else last)))

        incidents = make_client(handler).fetch_incidents(["sre"], date(2024, 1, 8), date(2024, 1, 14))

        assert offsets == [0, PAGE_SIZE]
        assert len(incidents) == PAGE_SIZE + 1

    def test_skipped_entries_still_count_towards_page_size(self):
        first = [
            incident_entry(n, "2024-01-10T10:00:00+00:00", "2024-01-10T11:00:00+00:00")
            for n in range(1, PAGE_SIZE)
        ]
        broken = incident_entry(PAGE_SIZE, "2024-01-10T10:00:00+00:00")
        del broken["attributes"]["created"]
        first.append(broken)
        last = [incident_entry(500, "2024-01-12T10:00:00+00:00", "2024-01-12T11:00:00+00:00")]
        offsets = []

        def handler(request):
            offset = int(request.url.params["page[offset]"])
            offsets.append(offset)
            return httpx.Response(200, json=search_body(*(first if offset == 0 else last)))

        incidents = make_client(handler).fetch_incidents(["sre"], date(2024, 1, 8), date(2024, 1, 14))

        assert offsets == [0, PAGE_SIZE]
        assert len(incidents) == PAGE_SIZE
        assert incidents[-1].id == "#incident-500"

    def test_non_incident_results_ignored(self):
        body = search_body(
            incident_entry(1, "2024-01-10T10:00:00+00:00", "2024-01-10T11:00:00+00:00"),
            {"type": "incident_todos", "id": "todo-1", "attributes": {}},
        )
        client = make_client(lambda request: httpx.Response(200, json=body))

        incidents = client.fetch_incidents(["sre"], date(2024, 1, 8), date(2024, 1, 14))

        assert [i.id for i in incidents] == ["#incident-1"]

    def test_inline_commander(self):
        entry = incident_entry(
            1,
            "2024-01-10T10:00:00+00:00",
            "2024-01-10T11:00:00+00:00",
            commander={"data": {"attributes": {"name": "Sam", "email": "sam@example.com"}}},
        )
        client = make_client(lambda request: httpx.Response(200, json=search_body(entry)))

        incident = client.fetch_incidents(["sre"], date(2024, 1, 8), date(2024, 1, 14))[0]

        assert incident.commander_email == "sam@example.com"

    def test_http_error_is_fatal(self):
        client = make_client(lambda request: httpx.Response(403, json={"errors": ["Forbidden"]}))

        with pytest.raises(FetchError) as exc_info:
            client.fetch_incidents(["sre"], date(2024, 1, 8), date(2024, 1, 14))
        assert "403" in str(exc_info.value)

    def test_connect_errors_retried(self, monkeypatch):
        monkeypatch.setattr(DatadogClient._search_page.retry, "sleep", lambda seconds: None)
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=search_body())

        incidents = make_client(handler).fetch_incidents(["sre"], date(2024, 1, 8), date(2024, 1, 14))

        assert incidents == []
        assert len(calls) == 3

    def test_retries_exhausted(self, monkeypatch):
        monkeypatch.setattr(DatadogClient._search_page.retry, "sleep", lambda seconds: None)

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError):
            make_client(handler).fetch_incidents(["sre"], date(2024, 1, 8), date(2024, 1, 14))
