"""
Datadog Incidents Client

Searches Datadog Incident Management for a team's incidents in a date range
and maps them to Incident entities.
"""

from typing import Any, Dict, List, Optional
from datetime import date, datetime, time, timedelta, timezone

import httpx
import structlog
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ..errors import FetchError
from ..schemas.models import Incident
from .correlator import sort_incidents

logger = structlog.get_logger(__name__)

SEARCH_PATH = "/api/v2/incidents/search"
PAGE_SIZE = 100


def _day_start(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp())


def _field_value(fields: Dict[str, Any], name: str) -> str:
    """Value of a user-defined incident field (single or multiple value)"""
    value = (fields.get(name) or {}).get("value")
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


class DatadogClient:
    """
    Datadog incident search client.

    Search: GET /api/v2/incidents/search?query=created_before:.. created_after:.. teams:..
    """

    def __init__(
        self,
        api_key: str,
        app_key: str,
        site: str = "datadoghq.com",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.site = site
        self.api_key = api_key
        self.app_key = app_key
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=f"https://api.{self.site}",
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Accept": "application/json",
                    "DD-API-KEY": self.api_key,
                    "DD-APPLICATION-KEY": self.app_key,
                },
            )
        return self._client

    def incident_link(self, public_id: int) -> str:
        return f"https://app.{self.site}/incidents/{public_id}"

    def fetch_incidents(self, teams: List[str], since: date, until: date) -> List[Incident]:
        """
        Fetch incidents of all teams created in [since, until] (whole days).

        Incidents shared by several teams are returned once. The result is
        sorted by creation time.

        Raises:
            FetchError: if the search fails
        """
        created_after = _day_start(since)
        created_before = _day_start(until + timedelta(days=1))

        incidents: List[Incident] = []
        seen = set()
        for team in teams:
            for incident in self._search_team(team, created_after, created_before):
                if incident.id in seen:
                    continue
                seen.add(incident.id)
                incidents.append(incident)

        logger.info("Fetched Datadog incidents", teams=teams, count=len(incidents))
        return sort_incidents(incidents)

    def _search_team(self, team: str, created_after: int, created_before: int) -> List[Incident]:
        query = f"created_before:{created_before} created_after:{created_after} teams:{team}"
        incidents: List[Incident] = []
        offset = 0

        while True:
            try:
                body = self._search_page(query, offset)
            except httpx.HTTPStatusError as e:
                logger.error(
                    "Datadog incident search failed",
                    team=team,
                    status_code=e.response.status_code,
                    response=e.response.text[:500],
                )
                raise FetchError(
                    f"Error when calling IncidentsApi.SearchIncidents: {e.response.status_code}"
                ) from e
            except httpx.HTTPError as e:
                raise FetchError(f"Error when calling IncidentsApi.SearchIncidents: {e}") from e

            batch, result_count = self._parse_search_response(body)
            incidents.extend(batch)
            logger.debug(
                "Fetched incident search page",
                team=team,
                offset=offset,
                results=result_count,
                count=len(batch),
            )

            # Page size counts raw results, including ones skipped below
            if result_count < PAGE_SIZE:
                return incidents
            offset += PAGE_SIZE

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        reraise=True,
    )
    def _search_page(self, query: str, offset: int) -> Dict[str, Any]:
        client = self._get_client()
        response = client.get(
            SEARCH_PATH,
            params={
                "query": query,
                "filter[field_type]": "all",
                "sort": "created",
                "page[size]": PAGE_SIZE,
                "page[offset]": offset,
            },
        )
        response.raise_for_status()
        return response.json()

    def _parse_search_response(self, body: Dict[str, Any]) -> tuple[List[Incident], int]:
        """
        Map search results to incidents, skipping non-incident entries.

        Returns:
            Tuple of (incidents, number of search results in the response)
        """
        included = body.get("included") or []
        users = {
            item.get("id"): item.get("attributes") or {}
            for item in included
            if item.get("type") == "users"
        }

        results = ((body.get("data") or {}).get("attributes") or {}).get("incidents") or []
        entries = [wrapper.get("data") or {} for wrapper in results]
        entries.extend(item for item in included if item.get("type") == "incidents")

        incidents = []
        seen = set()
        for entry in entries:
            if entry.get("type") != "incidents" or entry.get("id") in seen:
                continue
            seen.add(entry.get("id"))
            try:
                incidents.append(self._to_incident(entry, users))
            except (KeyError, ValidationError) as e:
                logger.warning("Skipping malformed incident", incident=entry.get("id"), error=str(e))
        return incidents, len(results)

    def _to_incident(self, entry: Dict[str, Any], users: Dict[str, Dict[str, Any]]) -> Incident:
        attributes = entry.get("attributes") or {}
        fields = attributes.get("fields") or {}
        public_id = attributes.get("public_id") or 0

        commander = self._commander(entry, users)
        duration = attributes.get("customer_impact_duration") or 0

        return Incident(
            id=f"#incident-{public_id}",
            title=attributes.get("title", ""),
            link=self.incident_link(public_id),
            severity=_field_value(fields, "severity"),
            commander=commander.get("name") or "",
            commander_email=commander.get("email") or "",
            root_cause=_field_value(fields, "root_cause"),
            summary=_field_value(fields, "summary"),
            customer_impact_scope=attributes.get("customer_impact_scope") or "",
            customer_impact_duration=timedelta(seconds=duration),
            created_at=attributes["created"],
            resolved_at=attributes.get("resolved"),
        )

    @staticmethod
    def _commander(entry: Dict[str, Any], users: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
        """Commander user attributes, inline or via the included users"""
        attributes = entry.get("attributes") or {}
        inline = ((attributes.get("commander") or {}).get("data") or {}).get("attributes")
        if inline:
            return inline

        relationships = entry.get("relationships") or {}
        user_ref = (relationships.get("commander_user") or {}).get("data") or {}
        return users.get(user_ref.get("id"), {})

    def close(self) -> None:
        """Close HTTP client"""
        if self._client:
            self._client.close()
            self._client = None
