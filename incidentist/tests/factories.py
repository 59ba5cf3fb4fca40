"""
Sample entity factories for report tests
"""

from datetime import datetime, timezone

from ..schemas.models import Incident, Page

BASE = datetime(2024, 1, 10, 10, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0) -> datetime:
    """UTC timestamp on the sample day"""
    return BASE.replace(hour=hour, minute=minute)


def make_incident(
    public_id: int = 1,
    created_at: datetime = None,
    resolved_at: datetime = None,
    **overrides,
) -> Incident:
    fields = {
        "id": f"#incident-{public_id}",
        "title": f"Incident {public_id}",
        "link": f"https://app.datadoghq.com/incidents/{public_id}",
        "severity": "SEV-2",
        "commander": "Jane Doe",
        "commander_email": "jane@example.com",
        "root_cause": "Bad deploy",
        "summary": "Rolled back",
        "created_at": created_at or at(10),
        "resolved_at": resolved_at,
    }
    fields.update(overrides)
    return Incident(**fields)


def make_page(
    page_id: str = "P1",
    created_at: datetime = None,
    **overrides,
) -> Page:
    fields = {
        "id": page_id,
        "title": f"Page {page_id}",
        "link": f"https://example.pagerduty.com/incidents/{page_id}",
        "created_at": created_at or at(10),
    }
    fields.update(overrides)
    return Page(**fields)
