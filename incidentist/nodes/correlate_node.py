"""
Correlate Node

Link pages to incidents.
Workflow: fetch_pages -> correlate -> render
"""

from typing import Any

from ..tools.correlator import correlate


def correlate_node(state: dict[str, Any]) -> dict[str, Any]:
    """Correlate Node - Link pages to the incidents whose window holds them."""
    result = correlate(state.get("incidents", []), state.get("pages", []))

    return {
        "current_node": "correlate",
        "nodes_executed": state.get("nodes_executed", []) + ["correlate"],
        "incidents": result.incidents,
        "pages": result.pages,
        "other_pages": result.other_pages,
        "linked_page_count": result.link_count,
    }
