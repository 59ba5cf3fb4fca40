"""
Report Workflow State Schema

TypedDict that flows through all LangGraph nodes of the report workflow.
"""

from typing import TypedDict, Optional, List

from .models import Incident, Page
from .request import ReportRequest


class ReportState(TypedDict, total=False):
    """Report Workflow State"""

    # ============== Input ==============
    request: ReportRequest

    # ============== Fetched Entities ==============
    incidents: List[Incident]             # Sorted by creation time
    pages: List[Page]                     # Fetch order

    # ============== Correlation ==============
    other_pages: List[Page]               # Pages linked to no incident
    linked_page_count: int

    # ============== Output ==============
    document: str
    published: bool
    publish_title: Optional[str]
    publish_error: Optional[str]

    # ============== Execution Tracking ==============
    current_node: str
    nodes_executed: List[str]
    started_at: str
