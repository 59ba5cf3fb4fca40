"""
Tag Filter

Decides whether a page's alerts carry the required tag tokens.
Alert details embed tags as a comma-separated string, e.g.
{"body": {"details": {"tags": "team:sre, env:prod"}}}.
"""

import json
from typing import Any, Iterable, List, Optional

import structlog

from ..schemas.models import AlertDetails, TagFilterSet

logger = structlog.get_logger(__name__)


def parse_alert_details(alert: dict[str, Any]) -> AlertDetails:
    """
    Extract embedded tag tokens from one alert.

    Never raises; a missing or malformed payload yields tokens=None.
    """
    alert_id = alert.get("id") if isinstance(alert, dict) else None

    body = alert.get("body") if isinstance(alert, dict) else None
    if not isinstance(body, dict):
        return AlertDetails(alert_id=alert_id)

    details = body.get("details")
    if isinstance(details, str):
        try:
            details = json.loads(details)
        except ValueError:
            return AlertDetails(alert_id=alert_id)
    if not isinstance(details, dict):
        return AlertDetails(alert_id=alert_id)

    tags = details.get("tags")
    if isinstance(tags, str):
        raw_tokens = tags.split(",")
    elif isinstance(tags, list) and all(isinstance(t, str) for t in tags):
        raw_tokens = tags
    else:
        return AlertDetails(alert_id=alert_id)

    tokens = tuple(t.strip() for t in raw_tokens if t.strip())
    return AlertDetails(alert_id=alert_id, tokens=tokens)


def matches_tag_filters(tag_filters: TagFilterSet, alerts: Iterable[AlertDetails]) -> bool:
    """
    True if any single alert carries every required tag.

    An empty filter set always matches. Alerts without usable tags never do.
    """
    if tag_filters.is_empty:
        return True

    for details in alerts:
        if not details.has_tags:
            continue
        if tag_filters.tags <= details.tags:
            return True
    return False


def resolve_team(alerts: Iterable[AlertDetails]) -> Optional[str]:
    """Team named by the first team:<name> tag across the alerts"""
    for details in alerts:
        team = details.team
        if team:
            return team
    return None


class TagFilter:
    """
    Page filter combining the team-membership check and the tag filter set.

    The team check runs first.
    """

    def __init__(self, tag_filters: TagFilterSet, match_team: Optional[str] = None):
        self.tag_filters = tag_filters
        self.match_team = match_team

    @property
    def needs_alerts(self) -> bool:
        """Whether a decision requires the page's alerts at all"""
        return bool(self.match_team) or not self.tag_filters.is_empty

    def accepts(self, page_id: str, alerts: List[dict[str, Any]]) -> bool:
        details = [parse_alert_details(a) for a in alerts]

        if self.match_team:
            team = resolve_team(details)
            if team is None:
                logger.warning("No team tag found, skipping page", page_id=page_id)
                return False
            if team != self.match_team:
                logger.warning(
                    "Page belongs to another team, skipping",
                    page_id=page_id,
                    team=team,
                    expected_team=self.match_team,
                )
                return False

        matched = matches_tag_filters(self.tag_filters, details)
        if not matched:
            logger.debug("Page does not match tag filters", page_id=page_id)
        return matched
