"""
Airweave Client

Issues search requests against the Airweave REST API and normalizes the
response into canonical SearchResults.

Contract: search() never raises. Every failure (not configured, transport,
upstream status, unparseable body) is reported as a failed SearchResponse
with zero results.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import httpx

from ..common.config import AirweaveConfig, mask_secret
from ..common.schemas import SearchQuery, SearchResponse
from .normalizer import normalize_response

logger = logging.getLogger("weavesearch.retriever.airweave_client")

PREVIEW_CHARS = 500

NOT_CONFIGURED_MESSAGE = "Airweave client not configured. Please set API key and collection ID."


class AirweaveError(Exception):
    """Base error for Airweave calls."""
    pass


class NotConfiguredError(AirweaveError):
    """API key or collection ID missing; raised before any I/O."""

    def __init__(self, message: str = NOT_CONFIGURED_MESSAGE):
        super().__init__(message)


class TransportError(AirweaveError):
    """Network, connection or timeout failure."""
    pass


class UpstreamError(AirweaveError):
    """Airweave answered with a non-success status."""

    def __init__(self, status_code: int, body: str, message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"Airweave API error ({status_code}): {body}")


class MalformedResponseError(AirweaveError):
    """Response body is not JSON."""
    pass


@dataclass
class ConnectionStatus:
    """Result of a connectivity check"""
    success: bool
    message: str


def _preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class AirweaveClient:
    """
    HTTP client for Airweave collection search.

    Settings are read from the passed AirweaveConfig at the start of every
    call, so changes made with set_api_key()/set_collection_id() (or by
    mutating the config) apply to the next request.

    Usage:
        client = AirweaveClient(config.airweave)
        response = await client.search(SearchQuery(text="onboarding checklist"))
    """

    def __init__(
        self,
        config: AirweaveConfig,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Airweave settings (shared, may change between calls)
            client_factory: Builds the httpx.AsyncClient for one call; the
                caller owns clients it provides (used by tests)
        """
        self._config = config
        self._client_factory = client_factory

    @property
    def config(self) -> AirweaveConfig:
        return self._config

    def set_api_key(self, api_key: str) -> None:
        self._config.api_key = api_key.strip()

    def set_collection_id(self, collection_id: str) -> None:
        self._config.collection_id = collection_id.strip()

    def is_configured(self) -> bool:
        """Both the API key and the collection ID are set"""
        return bool(self._config.api_key and self._config.collection_id)

    def describe(self) -> List[str]:
        """Masked view of the current client settings"""
        return [
            f"API Key: {mask_secret(self._config.api_key)}",
            f"Collection ID: {self._config.collection_id or '(not set)'}",
            f"Base URL: {self._config.api_url}",
            f"Configured: {'yes' if self.is_configured() else 'no'}",
        ]

    async def search(self, query: SearchQuery) -> SearchResponse:
        """
        Search the configured collection.

        Returns:
            SearchResponse, success=False with an error message on any failure
        """
        start = time.perf_counter()

        try:
            payload = await self._request_search(query)
            results = normalize_response(payload)
        except AirweaveError as e:
            logger.error("Airweave search failed: %s", e)
            return SearchResponse.failure(query, str(e))
        except Exception as e:
            logger.error("Unexpected Airweave search error: %s", e, exc_info=True)
            return SearchResponse.failure(query, f"Unexpected error: {e}")

        if not results:
            logger.info("No results found in response")

        return SearchResponse(
            success=True,
            query=query.text,
            search_type=query.search_mode,
            results=results,
            total_results=len(results),
            processing_time=(time.perf_counter() - start) * 1000,
        )

    async def _request_search(self, query: SearchQuery) -> Any:
        """POST the search and return the decoded JSON body"""
        if not self.is_configured():
            raise NotConfiguredError()

        url = f"{self._config.api_url}/collections/{self._config.collection_id}/search"
        body = {
            "query": query.text,
            "search_type": query.search_mode.value,
            "limit": query.limit,
        }
        logger.info("Requesting: POST %s", url)
        logger.info("Body: %s", json.dumps(body))

        response = await self._send("POST", url, json=body)
        return self._decode(response)

    async def list_collections(self) -> list:
        """
        List collections visible to the API key (diagnostics).

        Raises:
            AirweaveError: on any failure
        """
        if not self._config.api_key:
            raise NotConfiguredError("Airweave API key not set.")

        url = f"{self._config.api_url}/collections"
        logger.info("Listing collections: GET %s", url)

        response = await self._send("GET", url)
        data = self._decode(response)
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ("collections", "results", "data", "items"):
                if isinstance(data.get(key), list):
                    return data[key]
        return []

    async def test_connection(self) -> ConnectionStatus:
        """Check connectivity by listing collections; never raises"""
        try:
            collections = await self.list_collections()
        except AirweaveError as e:
            return ConnectionStatus(success=False, message=str(e))

        return ConnectionStatus(
            success=True,
            message=f"Connected successfully. Found {len(collections)} collections.",
        )

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self._config.api_key,
        }

        manage_client = self._client_factory is None
        if manage_client:
            client = httpx.AsyncClient(timeout=self._config.timeout)
        else:
            client = self._client_factory()

        try:
            response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"Airweave request failed: {e.__class__.__name__}: {e}") from e
        finally:
            if manage_client:
                await client.aclose()

        logger.info("Status: %s %s", response.status_code, response.reason_phrase)

        if not response.is_success:
            logger.info("Response: %s", _preview(response.text))
            raise UpstreamError(response.status_code, response.text)

        return response

    def _decode(self, response: httpx.Response) -> Any:
        try:
            data = response.json()
        except ValueError as e:
            logger.info("Response: %s", _preview(response.text))
            raise MalformedResponseError(f"Airweave returned invalid JSON: {e}") from e

        logger.info("Raw response type: %s", type(data).__name__)
        logger.info("Raw response preview: %s", _preview(json.dumps(data, default=str)))
        return data
