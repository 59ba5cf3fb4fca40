"""
Page Collector

Turns raw PagerDuty incidents into report pages.

Per page: team filter -> tag filter -> title normalisation -> notes ->
responders. Enrichment failures are isolated to the page they concern.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime

import pagerduty
import structlog

from ..schemas.models import Note, Page
from ..schemas.request import ReportRequest
from .pagerduty_client import PagerDutyClient
from .tag_filter import TagFilter
from .title_normalizer import TitleNormalizer

logger = structlog.get_logger(__name__)


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp as returned by PagerDuty"""
    if not isinstance(value, str):
        raise ValueError(f"not a timestamp: {value!r}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class PageCollector:
    """
    Collects the pages of one report request.

    Args:
        client: PagerDuty client
        request: Report request (teams, date range, urgency, rules, filters)
    """

    def __init__(self, client: PagerDutyClient, request: ReportRequest):
        self.client = client
        self.request = request
        self.tag_filter = TagFilter(request.tag_filters, request.match_team)
        self.normalizer = TitleNormalizer(request.replace_rules)

    def collect(self) -> List[Page]:
        """
        Fetch and enrich all pages, in PagerDuty listing order.

        Raises:
            FetchError: if teams cannot be resolved or pages cannot be listed
        """
        team_ids = self.client.get_team_ids(list(self.request.pagerduty_teams))
        raw_pages = self.client.list_incidents(
            team_ids,
            self.request.since,
            self.request.until,
            self.request.urgency,
        )

        pages = []
        for raw in raw_pages:
            page = self._collect_page(raw)
            if page is not None:
                pages.append(page)

        logger.info(
            "Pages collected",
            listed=len(raw_pages),
            kept=len(pages),
        )
        return pages

    def _collect_page(self, raw: Dict[str, Any]) -> Optional[Page]:
        page_id = raw["id"]

        try:
            created_at = parse_timestamp(raw["created_at"])
        except (KeyError, ValueError) as e:
            logger.warning(
                "Page has no valid creation time, skipping",
                page_id=page_id,
                created_at=raw.get("created_at"),
                error=str(e),
            )
            return None

        if self.tag_filter.needs_alerts:
            try:
                alerts = self.client.list_alerts(page_id)
            except pagerduty.Error as e:
                logger.warning(
                    "Could not fetch alerts for page, skipping",
                    page_id=page_id,
                    error=str(e),
                )
                return None
            if not self.tag_filter.accepts(page_id, alerts):
                return None

        return Page(
            id=page_id,
            title=self.normalizer.normalize(raw.get("title") or ""),
            link=raw.get("html_url") or "",
            created_at=created_at,
            responders=self._responders(page_id),
            notes=self._notes(page_id),
        )

    def _notes(self, page_id: str) -> List[Note]:
        try:
            raw_notes = self.client.list_notes(page_id)
        except pagerduty.Error as e:
            logger.warning(
                "Could not fetch notes for page, keeping it without notes",
                page_id=page_id,
                error=str(e),
            )
            return []

        notes = []
        for raw in raw_notes:
            user = self._user((raw.get("user") or {}).get("id"))
            notes.append(Note(
                content=raw.get("content") or "",
                user_name=user.get("name") if user else None,
                user_email=user.get("email") if user else None,
            ))
        return notes

    def _responders(self, page_id: str) -> List[str]:
        """Emails of users the page was assigned to, first assignment first"""
        try:
            entries = self.client.list_log_entries(page_id)
        except pagerduty.Error as e:
            logger.warning(
                "Could not fetch log entries for page",
                page_id=page_id,
                error=str(e),
            )
            return []

        responders: List[str] = []
        for entry in entries:
            for assignee in entry.get("assignees") or []:
                if assignee.get("type") != "user_reference":
                    continue
                user = self._user(assignee.get("id"))
                email = user.get("email") if user else None
                if email and email not in responders:
                    responders.append(email)
        return responders

    def _user(self, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not user_id:
            return None
        try:
            return self.client.get_user(user_id)
        except pagerduty.Error as e:
            logger.warning("Could not fetch user, ignoring", user_id=user_id, error=str(e))
            return None
