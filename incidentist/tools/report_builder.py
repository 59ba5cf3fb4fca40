"""
Report Builder

Renders correlated incidents and pages into the markdown on-call report.
Pure transformation; nothing here performs I/O.
"""

import re
from typing import List
from datetime import datetime, timedelta

import structlog

from ..schemas.models import Incident, Page
from ..schemas.request import ReportRequest

logger = structlog.get_logger(__name__)

FILLOUT_PLACEHOLDER = "  _TODO: please fill out_"
TIME_FORMAT = "%Y-%m-%d @%H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"

FOLLOW_UP_ITEMS = [
    "Happened before/common theme",
    "How can we prevent it",
    "Runbooks",
    "Related PRs",
    "Action items",
]

_WORD_START = re.compile(r"(^|\W)(\w)")


def title_case(text: str) -> str:
    """Upper-case the first letter of every word, leaving the rest as is"""
    return _WORD_START.sub(lambda m: m.group(1) + m.group(2).upper(), text)


def link(desc: str, url: str) -> str:
    """Markdown link; brackets in the text would break it"""
    desc = desc.replace("[", "|").replace("]", "|")
    return f"[{desc}]({url})"


def format_local(ts: datetime) -> str:
    return ts.astimezone().strftime(TIME_FORMAT)


def format_duration(duration: timedelta) -> str:
    """Render a duration as e.g. 1h30m0s"""
    total = int(duration.total_seconds())
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


class MarkdownDocument:
    """Append-only markdown builder"""

    def __init__(self):
        self._parts: List[str] = []

    def heading(self, level: int, text: str) -> None:
        self._parts.append("#" * level + " " + text + "\n\n")

    def para(self, text: str) -> None:
        self._parts.append(text + "\n\n")

    def unordered(self, level: int, item: str) -> None:
        self._parts.append("  " * (level - 1) + "- " + item + "\n")

    def br(self) -> None:
        self._parts.append("\n")

    def __str__(self) -> str:
        return "".join(self._parts)


def front_matter(title: str) -> str:
    return f"---\ntitle: {title}\n---\n"


class ReportBuilder:
    """
    Builds the on-call report for one request.

    Layout:
    - front matter carrying the report title
    - summary line with the date range and totals
    - one section per incident, oldest first, with its linked pages and
      empty follow-up sections for humans to fill in
    - "Other Pages": pages linked to no incident, in fetch order
    """

    def __init__(self, request: ReportRequest):
        self.request = request

    def title(self) -> str:
        teams = ", ".join(self.request.teams)
        until = self.request.until.strftime(DATE_FORMAT)
        return title_case(f"{teams} On-Call Report {until}")

    def build(self, incidents: List[Incident], pages: List[Page]) -> str:
        md = MarkdownDocument()

        since = self.request.since.strftime(DATE_FORMAT)
        until = self.request.until.strftime(DATE_FORMAT)
        md.para(
            f"Report for {since} - {until}: "
            f"total incidents - {len(incidents)}, total pages - {len(pages)}"
        )

        for incident in incidents:
            self._incident_section(md, incident)

        md.heading(3, "Other Pages")
        other_count = 0
        for page in pages:
            if page.incident_ids:
                continue
            self._other_page(md, page)
            other_count += 1

        document = front_matter(self.title()) + str(md)

        logger.info(
            "Report rendered",
            incidents=len(incidents),
            pages=len(pages),
            other_pages=other_count,
            length=len(document),
        )
        return document

    def _incident_section(self, md: MarkdownDocument, incident: Incident) -> None:
        when = format_local(incident.created_at)
        header = f"{incident.severity} | {incident.id} | {incident.title} | {when}"
        md.heading(3, link(header, incident.link))
        md.heading(4, f"IC: {incident.commander_email or incident.commander}")
        md.heading(4, "Root cause")
        md.para("  " + incident.root_cause)
        md.heading(4, "Summary")
        md.para("  " + incident.summary)

        if incident.customer_impact_scope:
            duration = format_duration(incident.customer_impact_duration)
            md.heading(4, f"Customer impact ({duration})")
            md.para("  " + incident.customer_impact_scope)

        md.heading(4, "PagerDuty pages")
        for page in incident.pages:
            md.unordered(1, self._page_link(page))
        md.br()

        md.heading(4, "Action taken")
        md.para(FILLOUT_PLACEHOLDER)
        md.heading(4, "Follow-up")
        for item in FOLLOW_UP_ITEMS:
            md.unordered(1, f"**{item}**")
            md.para(FILLOUT_PLACEHOLDER)

    def _other_page(self, md: MarkdownDocument, page: Page) -> None:
        md.unordered(1, self._page_link(page))
        md.unordered(2, f"**Ack'ed by**: {', '.join(page.responders)}")
        if page.notes:
            md.unordered(2, "**Notes**:")
            for note in page.notes:
                if note.user_email:
                    md.unordered(3, f"**{note.user_email}**: {note.content}")
                else:
                    md.unordered(3, note.content)
            md.br()
        md.unordered(2, "**Action taken**: " + FILLOUT_PLACEHOLDER)
        md.unordered(2, "**Follow-up**: " + FILLOUT_PLACEHOLDER)

    @staticmethod
    def _page_link(page: Page) -> str:
        return link(f"{format_local(page.created_at)} {page.title}", page.link)

