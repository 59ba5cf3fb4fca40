"""
Fetch Incidents Node

Search the monitoring platform for the teams' incidents.
Workflow: START -> fetch_incidents -> fetch_pages
"""

from typing import Any
import structlog

from ..tools.datadog_client import DatadogClient

logger = structlog.get_logger(__name__)


def fetch_incidents_node(state: dict[str, Any], *, client: DatadogClient) -> dict[str, Any]:
    """
    Fetch Incidents Node - Search Datadog incidents.

    Incidents are searched per team, merged by id and sorted by creation
    time. A failed search is fatal (FetchError propagates).

    Args:
        state: Current workflow state
        client: Datadog client

    Returns:
        Updated state with incidents
    """
    request = state["request"]

    logger.info(
        "Fetching incidents",
        teams=list(request.teams),
        since=request.since.isoformat(),
        until=request.until.isoformat(),
    )

    incidents = client.fetch_incidents(list(request.teams), request.since, request.until)

    return {
        "current_node": "fetch_incidents",
        "nodes_executed": state.get("nodes_executed", []) + ["fetch_incidents"],
        "incidents": incidents,
    }
