"""Incidentist Schemas"""
from .models import (
    Note,
    Page,
    Incident,
    ReplaceRule,
    TagFilterSet,
    AlertDetails,
)
from .request import ReportRequest, PublishTarget
from .state import ReportState

__all__ = [
    "Note",
    "Page",
    "Incident",
    "ReplaceRule",
    "TagFilterSet",
    "AlertDetails",
    "ReportRequest",
    "PublishTarget",
    "ReportState",
]
