"""
Tests for Report Workflow
"""

from unittest.mock import MagicMock

import pytest

from ..errors import ConfigurationError, FetchError, PublishError
from ..nodes.conditions import check_publish
from ..schemas.request import PublishTarget
from ..tools.confluence_client import ConfluenceClient
from ..tools.datadog_client import DatadogClient
from ..tools.pagerduty_client import PagerDutyClient
from ..workflow import ReportWorkflow
from .factories import at, make_incident


@pytest.fixture
def datadog_client():
    client = MagicMock(spec=DatadogClient)
    client.fetch_incidents.return_value = [
        make_incident(1, created_at=at(10), resolved_at=at(11)),
    ]
    return client


@pytest.fixture
def pagerduty_client():
    client = MagicMock(spec=PagerDutyClient)
    client.get_team_ids.return_value = ["T1"]
    client.list_incidents.return_value = [
        {"id": "P1", "title": "DB latency", "html_url": "https://pd/P1", "created_at": "2024-01-10T09:50:00Z"},
        {"id": "P2", "title": "Disk full", "html_url": "https://pd/P2", "created_at": "2024-01-10T20:00:00Z"},
    ]
    client.list_notes.return_value = []
    client.list_log_entries.return_value = []
    return client


@pytest.fixture
def confluence_client():
    client = MagicMock(spec=ConfluenceClient)
    client.create_page.return_value = {"id": "42"}
    return client


@pytest.fixture
def workflow(datadog_client, pagerduty_client, confluence_client):
    return ReportWorkflow(datadog_client, pagerduty_client, confluence_client)


class TestReportWorkflow:
    """Tests for ReportWorkflow"""

    def test_compile(self, workflow):
        app = workflow.compile()
        assert app is not None
        assert workflow.compile() is app

    def test_get_initial_state(self, workflow, report_request):
        state = workflow.get_initial_state(report_request)

        assert state["request"] is report_request
        assert state["current_node"] == "start"
        assert state["nodes_executed"] == []
        assert state["published"] is False

    def test_run_without_publish(self, workflow, report_request, confluence_client):
        state = workflow.run(report_request)

        assert state["nodes_executed"] == ["fetch_incidents", "fetch_pages", "correlate", "render"]
        assert state["linked_page_count"] == 1
        assert [p.id for p in state["other_pages"]] == ["P2"]
        assert state["document"].startswith("---\ntitle: Sre On-Call Report 2024-01-14\n---\n")
        assert "total incidents - 1, total pages - 2" in state["document"]
        assert state["published"] is False
        confluence_client.create_page.assert_not_called()

    def test_run_with_publish(self, workflow, request_factory, confluence_client):
        request = request_factory(publish=PublishTarget(space_key="OPS", parent_id="7"))

        state = workflow.run(request)

        assert state["nodes_executed"][-1] == "publish"
        assert state["published"] is True
        assert state["publish_title"] == "Sre On-Call Report 2024-01-14"
        title, body, target = confluence_client.create_page.call_args.args
        assert title == "Sre On-Call Report 2024-01-14"
        assert "title:" not in body
        assert target == request.publish

    def test_publish_failure_recorded(self, workflow, request_factory, confluence_client):
        confluence_client.create_page.side_effect = PublishError("status 500", status_code=500)
        request = request_factory(publish=PublishTarget(space_key="OPS"))

        state = workflow.run(request)

        assert state["published"] is False
        assert "status 500" in state["publish_error"]
        assert state["document"]

    def test_publish_without_client(self, datadog_client, pagerduty_client, request_factory):
        workflow = ReportWorkflow(datadog_client, pagerduty_client)
        with pytest.raises(ConfigurationError):
            workflow.run(request_factory(publish=PublishTarget(space_key="OPS")))

    def test_fetch_error_propagates(self, workflow, report_request, datadog_client, pagerduty_client):
        datadog_client.fetch_incidents.side_effect = FetchError("search failed")

        with pytest.raises(FetchError):
            workflow.run(report_request)
        pagerduty_client.list_incidents.assert_not_called()

    def test_close(self, workflow, datadog_client, pagerduty_client, confluence_client):
        workflow.close()
        datadog_client.close.assert_called_once()
        pagerduty_client.close.assert_called_once()
        confluence_client.close.assert_called_once()


class TestCheckPublish:
    """Tests for the publish routing condition"""

    def test_routes(self, request_factory):
        assert check_publish({"request": request_factory()}) == "end"
        assert check_publish({"request": request_factory(publish=PublishTarget(space_key="OPS"))}) == "publish"
        assert check_publish({}) == "end"
