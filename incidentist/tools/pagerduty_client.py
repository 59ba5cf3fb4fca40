"""
PagerDuty Client

Thin wrapper over pagerduty.RestApiV2Client for the calls the report needs:
teams, incidents (pages), and per-incident alerts, notes and log entries.
"""

from typing import Any, Dict, List, Optional
from datetime import date, timedelta

import pagerduty
import structlog

from ..errors import FetchError

logger = structlog.get_logger(__name__)


class PagerDutyClient:
    """
    PagerDuty REST API v2 client.

    Users are cached for the lifetime of the client since the same
    responders show up on many pages.
    """

    def __init__(
        self,
        auth_token: Optional[str] = None,
        session: Optional[pagerduty.RestApiV2Client] = None,
    ):
        if session is None:
            session = pagerduty.RestApiV2Client(auth_token)
        self.session = session
        self._users: Dict[str, Dict[str, Any]] = {}

    def get_team_ids(self, names: List[str]) -> List[str]:
        """
        Resolve team names (case-insensitive) to ids.

        Unknown names are logged; it is only fatal when none resolve.

        Raises:
            FetchError: if no team could be resolved or listing fails
        """
        wanted = [n.lower() for n in names]
        found: Dict[str, str] = {}

        try:
            for team in self.session.iter_all("teams"):
                name = (team.get("name") or "").lower()
                if name in wanted and name not in found:
                    found[name] = team["id"]
                if len(found) == len(wanted):
                    break
        except pagerduty.Error as e:
            raise FetchError(f"failed to list teams: {e}") from e

        missing = [n for n in wanted if n not in found]
        if not found:
            raise FetchError(f"could not find any team IDs: teams {missing} not found")
        if missing:
            logger.warning("Some teams could not be found", teams=missing)

        return [found[n] for n in wanted if n in found]

    def list_incidents(
        self,
        team_ids: List[str],
        since: date,
        until: date,
        urgency: str,
    ) -> List[Dict[str, Any]]:
        """
        List PagerDuty incidents (pages) of the teams in [since, until].

        Raises:
            FetchError: if listing fails
        """
        params = {
            "team_ids[]": team_ids,
            "since": since.isoformat(),
            "until": (until + timedelta(days=1)).isoformat(),
            "urgencies[]": [urgency],
        }
        try:
            incidents = list(self.session.iter_all("incidents", params=params))
        except pagerduty.Error as e:
            raise FetchError(f"failed to list PagerDuty incidents: {e}") from e

        logger.info("Fetched PagerDuty incidents", team_ids=team_ids, count=len(incidents))
        return incidents

    def list_alerts(self, incident_id: str) -> List[Dict[str, Any]]:
        return list(self.session.iter_all(f"incidents/{incident_id}/alerts"))

    def list_notes(self, incident_id: str) -> List[Dict[str, Any]]:
        return self.session.rget(f"incidents/{incident_id}/notes") or []

    def list_log_entries(self, incident_id: str) -> List[Dict[str, Any]]:
        return list(self.session.iter_all(f"incidents/{incident_id}/log_entries"))

    def get_user(self, user_id: str) -> Dict[str, Any]:
        if user_id not in self._users:
            self._users[user_id] = self.session.rget(f"users/{user_id}")
        return self._users[user_id]

    def close(self) -> None:
        """Close the underlying HTTP session"""
        self.session.close()
