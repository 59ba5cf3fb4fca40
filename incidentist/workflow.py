"""
Report Workflow

LangGraph workflow producing one on-call report.
FETCH_INCIDENTS -> FETCH_PAGES -> CORRELATE -> RENDER -> PUBLISH | END
"""

from typing import Any, Optional
from datetime import datetime, timezone
from functools import partial

import structlog
from langgraph.graph import StateGraph, START, END

from .errors import ConfigurationError
from .schemas.request import ReportRequest
from .schemas.state import ReportState
from .tools.datadog_client import DatadogClient
from .tools.pagerduty_client import PagerDutyClient
from .tools.confluence_client import ConfluenceClient
from .nodes import (
    fetch_incidents_node,
    fetch_pages_node,
    correlate_node,
    render_node,
    publish_node,
    check_publish,
)

logger = structlog.get_logger(__name__)


class ReportWorkflow:
    """
    Report Workflow

    Nodes run synchronously, one at a time:
    - FETCH_INCIDENTS: Search Datadog incidents of the teams
    - FETCH_PAGES: List, filter and enrich PagerDuty pages
    - CORRELATE: Link pages to incidents by time window
    - RENDER: Build the markdown report
    - PUBLISH: Upload to Confluence (only with a publish destination)
    """

    def __init__(
        self,
        datadog_client: DatadogClient,
        pagerduty_client: PagerDutyClient,
        confluence_client: Optional[ConfluenceClient] = None,
    ):
        """
        Initialize workflow.

        Args:
            datadog_client: Incident source
            pagerduty_client: Page source
            confluence_client: Publish destination, only needed to publish
        """
        self.datadog_client = datadog_client
        self.pagerduty_client = pagerduty_client
        self.confluence_client = confluence_client

        self._graph: Optional[StateGraph] = None
        self._compiled = None

    def build_graph(self, graph: StateGraph) -> None:
        """
        Build the report workflow graph.

        START -> fetch_incidents -> fetch_pages -> correlate -> render
        render -> publish (if a destination is set) | END
        publish -> END
        """
        graph.add_node(
            "fetch_incidents",
            partial(fetch_incidents_node, client=self.datadog_client),
        )
        graph.add_node(
            "fetch_pages",
            partial(fetch_pages_node, client=self.pagerduty_client),
        )
        graph.add_node("correlate", correlate_node)
        graph.add_node("render", render_node)
        graph.add_node(
            "publish",
            partial(publish_node, client=self.confluence_client),
        )

        graph.add_edge(START, "fetch_incidents")
        graph.add_edge("fetch_incidents", "fetch_pages")
        graph.add_edge("fetch_pages", "correlate")
        graph.add_edge("correlate", "render")

        # RENDER -> PUBLISH | END (conditional)
        graph.add_conditional_edges(
            "render",
            check_publish,
            {
                "publish": "publish",
                "end": END,
            }
        )

        graph.add_edge("publish", END)

    def compile(self) -> Any:
        """Compile the workflow graph (once)"""
        if self._compiled:
            return self._compiled

        self._graph = StateGraph(ReportState)
        self.build_graph(self._graph)
        self._compiled = self._graph.compile()
        logger.debug("Compiled report workflow")
        return self._compiled

    def get_initial_state(self, request: ReportRequest) -> dict[str, Any]:
        return {
            "request": request,
            "incidents": [],
            "pages": [],
            "other_pages": [],
            "linked_page_count": 0,
            "document": "",
            "published": False,
            "publish_title": None,
            "publish_error": None,
            "current_node": "start",
            "nodes_executed": [],
            "started_at": datetime.now(timezone.utc).isoformat(),
        }

    def run(self, request: ReportRequest) -> dict[str, Any]:
        """
        Execute the workflow for one request.

        Returns:
            Final workflow state

        Raises:
            ConfigurationError: if publishing is requested without a client
            FetchError: if incidents or pages cannot be fetched
        """
        if request.wants_publish and self.confluence_client is None:
            raise ConfigurationError("publishing requested but Confluence is not configured")

        app = self.compile()

        logger.info(
            "Generating report",
            teams=list(request.teams),
            since=request.since.isoformat(),
            until=request.until.isoformat(),
            publish=request.wants_publish,
        )

        final_state = app.invoke(self.get_initial_state(request))

        if final_state.get("publish_error"):
            logger.error("Report generated but not published", error=final_state["publish_error"])
        else:
            logger.info(
                "Report generated",
                nodes_executed=final_state.get("nodes_executed", []),
                published=final_state.get("published", False),
            )
        return final_state

    def close(self) -> None:
        """Close all source and destination clients"""
        self.datadog_client.close()
        self.pagerduty_client.close()
        if self.confluence_client is not None:
            self.confluence_client.close()
