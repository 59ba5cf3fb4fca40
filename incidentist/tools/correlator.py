"""
Page/Incident Correlator

Links pages to incidents with a fixed time-window rule:

    incident.created_at - 15m < page.created_at < incident.resolved_at

Linkage is many-to-many; no precedence between overlapping incidents.
"""

from typing import List
from datetime import timedelta

import structlog
from pydantic import BaseModel, Field

from ..schemas.models import Incident, Page

logger = structlog.get_logger(__name__)

# Pages usually fire shortly before the incident is declared
CORRELATION_LEAD = timedelta(minutes=15)


class CorrelationResult(BaseModel):
    """Output of correlate()"""
    incidents: List[Incident] = Field(default_factory=list)
    pages: List[Page] = Field(default_factory=list)
    other_pages: List[Page] = Field(default_factory=list)
    link_count: int = 0


def in_window(page: Page, incident: Incident) -> bool:
    """
    Whether a page falls inside an incident's correlation window.

    Open interval on both ends. Open incidents match nothing.
    """
    if incident.resolved_at is None:
        return False
    return incident.created_at - CORRELATION_LEAD < page.created_at < incident.resolved_at


def sort_incidents(incidents: List[Incident]) -> List[Incident]:
    """Stable ascending sort by creation time"""
    return sorted(incidents, key=lambda i: i.created_at)


def correlate(incidents: List[Incident], pages: List[Page]) -> CorrelationResult:
    """
    Link every page to every incident whose window contains it.

    Fills Incident.pages (in page order) and Page.incident_ids (in incident
    order) in place.
    """
    ordered = sort_incidents(incidents)
    link_count = 0

    for page in pages:
        for incident in ordered:
            if in_window(page, incident):
                incident.pages.append(page)
                page.incident_ids.append(incident.id)
                link_count += 1

    other_pages = [p for p in pages if not p.incident_ids]

    open_incidents = [i.id for i in ordered if i.is_open]
    if open_incidents:
        logger.warning(
            "Open incidents never match pages",
            incident_ids=open_incidents,
        )

    logger.info(
        "Correlation complete",
        incidents=len(ordered),
        pages=len(pages),
        links=link_count,
        other_pages=len(other_pages),
    )

    return CorrelationResult(
        incidents=ordered,
        pages=list(pages),
        other_pages=other_pages,
        link_count=link_count,
    )
