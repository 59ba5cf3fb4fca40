"""
Fetch Pages Node

List and enrich the teams' pages.
Workflow: fetch_incidents -> fetch_pages -> correlate
"""

from typing import Any
import structlog

from ..tools.page_collector import PageCollector
from ..tools.pagerduty_client import PagerDutyClient

logger = structlog.get_logger(__name__)


def fetch_pages_node(state: dict[str, Any], *, client: PagerDutyClient) -> dict[str, Any]:
    """
    Fetch Pages Node - Collect PagerDuty pages.

    Args:
        state: Current workflow state
        client: PagerDuty client

    Returns:
        Updated state with pages in fetch order
    """
    request = state["request"]

    logger.info(
        "Fetching pages",
        teams=list(request.pagerduty_teams),
        urgency=request.urgency,
    )

    pages = PageCollector(client, request).collect()

    return {
        "current_node": "fetch_pages",
        "nodes_executed": state.get("nodes_executed", []) + ["fetch_pages"],
        "pages": pages,
    }
