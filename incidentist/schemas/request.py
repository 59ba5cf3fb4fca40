"""
Report Request Schema

One immutable value carrying the operational configuration of a run.
Credentials are kept out of it; see config_loader.Settings.
"""

from typing import Optional
from datetime import date
from pydantic import BaseModel, ConfigDict, Field

from .models import ReplaceRule, TagFilterSet


class PublishTarget(BaseModel):
    """Confluence destination of the published report"""
    model_config = ConfigDict(frozen=True)

    space_key: str
    parent_id: Optional[str] = None


class ReportRequest(BaseModel):
    """
    Report request.

    A single team is the one-element case of teams.
    """
    model_config = ConfigDict(frozen=True)

    # Datadog team names
    teams: tuple[str, ...]
    # PagerDuty team names, when they differ from teams
    pd_teams: tuple[str, ...] = ()
    # Inclusive report range
    since: date
    until: date
    # PagerDuty page urgency
    urgency: str = "high"
    # Applied to page titles in this order
    replace_rules: tuple[ReplaceRule, ...] = ()
    tag_filters: TagFilterSet = Field(default_factory=TagFilterSet)
    # Team a page's alerts must be tagged with (team:<name>)
    match_team: Optional[str] = None
    publish: Optional[PublishTarget] = None

    @property
    def pagerduty_teams(self) -> tuple[str, ...]:
        """PagerDuty team names, lower-cased for lookup"""
        return tuple(t.lower() for t in (self.pd_teams or self.teams))

    @property
    def wants_publish(self) -> bool:
        return self.publish is not None
