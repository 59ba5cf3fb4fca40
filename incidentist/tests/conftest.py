"""
Shared fixtures for report tests
"""

from datetime import date

import pytest

from ..schemas.models import Note
from ..schemas.request import ReportRequest
from .factories import at, make_incident, make_page


@pytest.fixture
def request_factory():
    """Build report requests with sensible defaults"""

    def factory(**overrides) -> ReportRequest:
        fields = {
            "teams": ("sre",),
            "since": date(2024, 1, 8),
            "until": date(2024, 1, 14),
        }
        fields.update(overrides)
        return ReportRequest(**fields)

    return factory


@pytest.fixture
def report_request(request_factory):
    """Default single-team request"""
    return request_factory()


@pytest.fixture
def resolved_incident():
    """Incident open 10:00 - 11:00 UTC"""
    return make_incident(1, created_at=at(10), resolved_at=at(11))


@pytest.fixture
def noted_page():
    """Uncorrelated page carrying responders and notes"""
    return make_page(
        "P9",
        created_at=at(20),
        responders=["alice@example.com", "bob@example.com"],
        notes=[
            Note(content="Restarted the pod", user_name="Alice", user_email="alice@example.com"),
            Note(content="Anonymous remark"),
        ],
    )
