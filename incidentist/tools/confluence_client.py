"""
Confluence Client

Creates a new Confluence page holding the converted report.
Uses the Confluence Cloud REST API with basic auth (user + API token).
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from ..errors import PublishError
from ..schemas.request import PublishTarget

logger = structlog.get_logger(__name__)


class ConfluenceClient:
    """
    Confluence Cloud client.

    Page creation is not idempotent, so requests are never retried.
    """

    def __init__(
        self,
        subdomain: str,
        username: str,
        token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = f"https://{subdomain}.atlassian.net/wiki"
        self.auth = (username, token)
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                auth=self.auth,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    @staticmethod
    def build_payload(title: str, body: str, target: PublishTarget) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": "page",
            "title": title,
            "space": {"key": target.space_key},
            "body": {
                "storage": {
                    "value": body,
                    "representation": "storage",
                },
            },
        }
        if target.parent_id:
            payload["ancestors"] = [{"id": target.parent_id}]
        return payload

    def create_page(self, title: str, body: str, target: PublishTarget) -> Dict[str, Any]:
        """
        Create a page under the target space (and parent, if given).

        Returns:
            Parsed response body

        Raises:
            PublishError: on transport failure or any status other than 200
        """
        client = self._get_client()
        payload = self.build_payload(title, body, target)

        logger.info(
            "Publishing report",
            title=title,
            space_key=target.space_key,
            parent_id=target.parent_id,
        )

        try:
            response = client.post("/rest/api/content", json=payload)
        except httpx.HTTPError as e:
            logger.error("Confluence request failed", error=str(e))
            raise PublishError(f"error uploading report: {e}") from e

        if response.status_code != 200:
            logger.error(
                "Confluence rejected report",
                status_code=response.status_code,
                body=response.text,
            )
            raise PublishError(
                f"error uploading report: status {response.status_code}",
                status_code=response.status_code,
            )

        result = response.json()
        logger.info("Report published", page_id=result.get("id"), title=title)
        return result

    def close(self) -> None:
        """Close HTTP client"""
        if self._client:
            self._client.close()
            self._client = None
