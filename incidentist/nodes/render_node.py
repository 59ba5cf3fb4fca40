"""
Render Node

Render the markdown report.
Workflow: correlate -> render -> publish | END
"""

from typing import Any
import structlog

from ..tools.report_builder import ReportBuilder

logger = structlog.get_logger(__name__)


def render_node(state: dict[str, Any]) -> dict[str, Any]:
    """
    Render Node - Build the report document.

    Args:
        state: Current workflow state

    Returns:
        Updated state with the markdown document
    """
    builder = ReportBuilder(state["request"])
    document = builder.build(state.get("incidents", []), state.get("pages", []))

    return {
        "current_node": "render",
        "nodes_executed": state.get("nodes_executed", []) + ["render"],
        "document": document,
    }
