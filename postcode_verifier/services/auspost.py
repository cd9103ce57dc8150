"""
AusPost postcode search client.

Wraps the ``postcode/search.json`` endpoint, which answers a free-text
query (a suburb name or a postcode) with matching localities.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from postcode_verifier.config import settings

logger = logging.getLogger(__name__)


class AusPostError(Exception):
    """Raised when the AusPost API cannot be reached or answers badly."""


@dataclass
class Locality:
    """A single locality returned by AusPost."""
    category: str
    id: int
    latitude: float
    longitude: float
    location: str
    postcode: str
    state: str


def _as_list(value: Any) -> List[Dict[str, Any]]:
    # A single match comes back as an object rather than a one-element list
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    if isinstance(value, dict):
        return [value]
    return []


def parse_localities(payload: Any) -> List[Locality]:
    """
    Extract localities from an AusPost response body.

    Accepts both ``{"localities": {"locality": ...}}`` and the same
    structure nested under ``"data"``. When nothing matches, AusPost
    sends ``{"localities": ""}``, which yields an empty list.
    """
    if not isinstance(payload, dict):
        return []

    container = payload.get("localities")
    if not isinstance(container, dict) or not container.get("locality"):
        data = payload.get("data")
        container = data.get("localities") if isinstance(data, dict) else None
    if not isinstance(container, dict):
        return []

    return [
        Locality(
            category=str(item.get("category") or ""),
            id=int(item.get("id") or 0),
            latitude=float(item.get("latitude") or 0),
            longitude=float(item.get("longitude") or 0),
            location=str(item.get("location") or item.get("suburb") or ""),
            postcode=str(item.get("postcode") or item.get("postal_code") or ""),
            state=str(item.get("state") or ""),
        )
        for item in _as_list(container.get("locality"))
    ]


class AusPostClient:
    """Async client for the AusPost postcode search API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            base_url: Search endpoint URL (defaults to settings)
            api_key: Bearer token for the API (defaults to settings)
            timeout: Request timeout in seconds
            transport: Custom httpx transport, used by tests
        """
        self.base_url = base_url or settings.auspost_base_url
        self.api_key = api_key if api_key is not None else settings.auspost_api_key
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.auspost_timeout_seconds,
            transport=transport
        )

    async def search(self, q: str, state: Optional[str] = None) -> List[Locality]:
        """
        Search localities by suburb name or postcode.

        Args:
            q: Suburb name or postcode
            state: Optional state abbreviation to narrow the search

        Returns:
            Matching localities, possibly empty

        Raises:
            AusPostError: On transport failures, non-2xx answers or bad JSON
        """
        params = {"q": q}
        if state:
            params["state"] = state

        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = await self._client.get(self.base_url, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"AusPost request failed: {e}")
            raise AusPostError(f"Failed to fetch AusPost: {e}") from e

        if response.is_error:
            logger.warning(f"AusPost returned {response.status_code} for q={q!r}")
            raise AusPostError(f"Failed to fetch AusPost: {response.reason_phrase}")

        try:
            return parse_localities(response.json())
        except (ValueError, TypeError) as e:
            logger.warning(f"AusPost returned an unreadable body: {e}")
            raise AusPostError("Failed to fetch AusPost: invalid response body") from e

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()


# Global client instance
auspost_client = AusPostClient()


async def get_auspost_client() -> AusPostClient:
    """Dependency injection for the AusPost client."""
    return auspost_client
