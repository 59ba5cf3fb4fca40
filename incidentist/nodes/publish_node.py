"""
Publish Node

Convert the report and publish it as a new Confluence page.
Workflow: render -> publish -> END (only when a destination is configured)
"""

from typing import Any
import structlog

from ..errors import PublishError
from ..tools.confluence_client import ConfluenceClient
from ..tools.markup_converter import prepare_publication

logger = structlog.get_logger(__name__)


def publish_node(state: dict[str, Any], *, client: ConfluenceClient) -> dict[str, Any]:
    """
    Publish Node - Upload the report.

    A publish failure does not fail the run: the error is recorded in state
    so the document can still be emitted.

    Args:
        state: Current workflow state
        client: Confluence client

    Returns:
        Updated state with publish outcome
    """
    request = state["request"]
    nodes_executed = state.get("nodes_executed", []) + ["publish"]

    try:
        publication = prepare_publication(state["document"])
        client.create_page(publication.title, publication.body, request.publish)
    except PublishError as e:
        logger.error("Publishing failed", error=str(e), status_code=e.status_code)
        return {
            "current_node": "publish",
            "nodes_executed": nodes_executed,
            "published": False,
            "publish_error": str(e),
        }

    return {
        "current_node": "publish",
        "nodes_executed": nodes_executed,
        "published": True,
        "publish_title": publication.title,
        "publish_error": None,
    }
