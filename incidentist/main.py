"""
Incidentist Main Entry Point

Command-line entry point: builds the report request, runs the report
workflow and writes the markdown report to stdout. Logs go to stderr.
"""

import argparse
import logging
import sys
from typing import List, Optional

import structlog
from dotenv import load_dotenv

from .config_loader import Settings, load_file_config, build_request, check_credentials
from .errors import IncidentistError
from .schemas.request import ReportRequest
from .tools.confluence_client import ConfluenceClient
from .tools.datadog_client import DatadogClient
from .tools.pagerduty_client import PagerDutyClient
from .workflow import ReportWorkflow

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Configure structured logging to stderr"""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="incidentist",
        description="Generate an on-call report from Datadog incidents and PagerDuty pages.",
    )
    parser.add_argument("--team", action="append", help="Datadog team (repeatable)")
    parser.add_argument("--pd-team", action="append", help="PagerDuty team, if different from --team (repeatable)")
    parser.add_argument("--since", help="First day of the report, YYYY-MM-DD")
    parser.add_argument("--until", help="Last day of the report (inclusive), YYYY-MM-DD")
    parser.add_argument("--urgency", help="PagerDuty page urgency (default: high)")
    parser.add_argument(
        "--replace",
        action="append",
        help="Rewrite page titles with /pattern/replacement/ (repeatable, applied in order)",
    )
    parser.add_argument("--tag-filter", action="append", help="Tag a page's alert must carry (repeatable)")
    parser.add_argument("--match-team", help="Only keep pages whose alerts are tagged team:<name>")
    parser.add_argument("--auth", help="PagerDuty auth token (default: PD_AUTH_TOKEN)")
    parser.add_argument("--config", help="YAML config file (default: INCIDENTIST_CONFIG)")
    parser.add_argument("--publish", action="store_true", help="Publish the report to Confluence")
    parser.add_argument("--space-key", help="Confluence space key")
    parser.add_argument("--parent-id", help="Confluence parent page id")
    parser.add_argument("--log-level", help="Log level (default: LOG_LEVEL or INFO)")
    return parser


def build_workflow(settings: Settings, request: ReportRequest) -> ReportWorkflow:
    """Create the source and destination clients for one run"""
    datadog_client = DatadogClient(
        api_key=settings.dd_api_key,
        app_key=settings.dd_app_key,
        site=settings.dd_site,
        timeout=settings.http_timeout_seconds,
    )
    pagerduty_client = PagerDutyClient(auth_token=settings.pd_auth_token)

    confluence_client = None
    if request.wants_publish:
        confluence_client = ConfluenceClient(
            subdomain=settings.confluence_subdomain,
            username=settings.confluence_username,
            token=settings.confluence_token,
            timeout=settings.http_timeout_seconds,
        )

    return ReportWorkflow(datadog_client, pagerduty_client, confluence_client)


def run(argv: Optional[List[str]] = None) -> int:
    """
    Run the CLI.

    Returns:
        Exit status: 0 on success, 1 on any fatal or publish error
    """
    load_dotenv()

    args = build_parser().parse_args(argv)
    settings = Settings()
    if args.auth:
        settings = settings.model_copy(update={"pd_auth_token": args.auth})

    configure_logging(args.log_level or settings.log_level, settings.log_format)

    try:
        file_config = load_file_config(args.config or settings.incidentist_config)
        request = build_request(vars(args), file_config)
        check_credentials(settings, request)
    except IncidentistError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    workflow = build_workflow(settings, request)
    try:
        final_state = workflow.run(request)
    except IncidentistError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        workflow.close()

    print(final_state.get("document", ""), end="")

    if final_state.get("publish_error"):
        return 1
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
