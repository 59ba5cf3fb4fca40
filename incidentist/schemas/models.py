"""
Report Entity Schemas

Incidents, pages and the rules used to normalise and filter pages.
Entities are built fresh on every run and never persisted.
"""

import re
from typing import Optional, List
from datetime import datetime, timedelta
from pydantic import BaseModel, ConfigDict, Field


class Note(BaseModel):
    """Note attached to a page. Author is absent when it cannot be resolved."""
    model_config = ConfigDict(frozen=True)

    content: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None


class Page(BaseModel):
    """
    Paging event from the on-call platform.

    Frozen except for incident_ids, which the correlator fills in.
    """
    model_config = ConfigDict(frozen=True)

    id: str = ""
    title: str                            # After title normalisation
    link: str
    created_at: datetime
    incident_ids: List[str] = Field(default_factory=list)
    responders: List[str] = Field(default_factory=list)
    notes: List[Note] = Field(default_factory=list)


class Incident(BaseModel):
    """
    Incident declared on the monitoring platform.

    Frozen except for pages, which the correlator fills in (page fetch order).
    A missing resolved_at means the incident is still open.
    """
    model_config = ConfigDict(frozen=True)

    id: str                               # e.g. "#incident-123"
    title: str
    link: str
    severity: str = ""
    commander: str = ""
    commander_email: str = ""
    root_cause: str = ""
    summary: str = ""
    customer_impact_scope: str = ""
    customer_impact_duration: timedelta = timedelta(0)
    created_at: datetime
    resolved_at: Optional[datetime] = None
    pages: List[Page] = Field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None


class ReplaceRule(BaseModel):
    """Compiled title replacement rule"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pattern: re.Pattern
    replacement: str = ""

    def apply(self, title: str) -> str:
        return self.pattern.sub(self.replacement, title)


class TagFilterSet(BaseModel):
    """
    Tag tokens a page's alert must all carry to be kept.

    An empty set keeps every page.
    """
    model_config = ConfigDict(frozen=True)

    tags: frozenset[str] = frozenset()

    @classmethod
    def from_tokens(cls, tokens: List[str]) -> "TagFilterSet":
        return cls(tags=frozenset(t.strip() for t in tokens if t and t.strip()))

    @property
    def is_empty(self) -> bool:
        return not self.tags


class AlertDetails(BaseModel):
    """
    Tags embedded in one alert's details payload.

    tokens is None when the payload is missing or malformed, so "no tags"
    and "no usable payload" stay distinguishable.
    """
    model_config = ConfigDict(frozen=True)

    alert_id: Optional[str] = None
    tokens: Optional[tuple[str, ...]] = None   # Payload order

    @property
    def tags(self) -> Optional[frozenset[str]]:
        if self.tokens is None:
            return None
        return frozenset(self.tokens)

    @property
    def has_tags(self) -> bool:
        return self.tokens is not None

    @property
    def team(self) -> Optional[str]:
        """Value of the first team:<name> tag, if any"""
        for tag in self.tokens or ():
            if tag.startswith("team:"):
                return tag.split(":", 1)[1]
        return None
