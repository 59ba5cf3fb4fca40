"""Incidentist Tools"""
from .title_normalizer import TitleNormalizer, parse_replace_rule, parse_replace_rules
from .tag_filter import TagFilter, parse_alert_details, matches_tag_filters, resolve_team
from .correlator import CorrelationResult, correlate, in_window, sort_incidents, CORRELATION_LEAD
from .report_builder import ReportBuilder, MarkdownDocument
from .markup_converter import Publication, extract_title, convert_markdown, prepare_publication
from .datadog_client import DatadogClient
from .pagerduty_client import PagerDutyClient
from .page_collector import PageCollector
from .confluence_client import ConfluenceClient

__all__ = [
    "TitleNormalizer",
    "parse_replace_rule",
    "parse_replace_rules",
    "TagFilter",
    "parse_alert_details",
    "matches_tag_filters",
    "resolve_team",
    "CorrelationResult",
    "correlate",
    "in_window",
    "sort_incidents",
    "CORRELATION_LEAD",
    "ReportBuilder",
    "MarkdownDocument",
    "Publication",
    "extract_title",
    "convert_markdown",
    "prepare_publication",
    "DatadogClient",
    "PagerDutyClient",
    "PageCollector",
    "ConfluenceClient",
]
