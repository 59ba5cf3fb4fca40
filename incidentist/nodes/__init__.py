"""
Incidentist Nodes

LangGraph nodes implementing the report workflow.
"""

from .fetch_incidents_node import fetch_incidents_node
from .fetch_pages_node import fetch_pages_node
from .correlate_node import correlate_node
from .render_node import render_node
from .publish_node import publish_node

from .conditions import check_publish

__all__ = [
    # Nodes
    "fetch_incidents_node",
    "fetch_pages_node",
    "correlate_node",
    "render_node",
    "publish_node",
    # Conditions
    "check_publish",
]
