"""
Incidentist

On-call report generator: correlates Datadog incidents with PagerDuty pages
and renders a markdown report, optionally published to Confluence.

Usage:
    incidentist --team sre --since 2024-01-01 --until 2024-01-07

Example:
    from incidentist import ReportWorkflow, build_request

    request = build_request({"team": ["sre"], "since": "2024-01-01", "until": "2024-01-07"})
    state = ReportWorkflow(datadog_client, pagerduty_client).run(request)
    print(state["document"])
"""

from .workflow import ReportWorkflow
from .main import run
from .config_loader import Settings, build_request, load_file_config

__version__ = "1.0.0"

__all__ = [
    "ReportWorkflow",
    "run",
    "Settings",
    "build_request",
    "load_file_config",
]
