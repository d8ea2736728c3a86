"""
API Source Adapter.

Adapter for fetching JSON from REST provider APIs.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx

from .base_adapter import AdapterConfig, BaseSourceAdapter, FetchResult

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


@dataclass
class APIAdapterConfig(AdapterConfig):
    """Configuration for API-based adapters."""

    base_url: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    # Static credential: sent as a bearer token or as a query parameter
    api_key: str | None = None
    api_key_param: str | None = None


class APIAdapter(BaseSourceAdapter):
    """
    Adapter for REST JSON APIs.

    Supports:
    - Rate limiting
    - Retry logic with exponential backoff (transport errors, 429 and 5xx)
    - Bearer / query-parameter API keys, or a dynamic auth header provider
    """

    def __init__(
        self,
        config: APIAdapterConfig,
        query_builder: Callable[..., dict] | None = None,
        response_parser: Callable[[dict], list[dict]] | None = None,
        auth_provider: Callable[[httpx.AsyncClient], Awaitable[dict[str, str]]] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the API adapter.

        Args:
            config: APIAdapterConfig with API settings
            query_builder: Function to build query params from kwargs
            response_parser: Function to extract the item list from the response
            auth_provider: Coroutine returning extra auth headers per request
            transport: Optional httpx transport (used for mocking in tests)
        """
        self.query_builder = query_builder
        self.response_parser = response_parser
        self.auth_provider = auth_provider
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        super().__init__(config)

    @property
    def api_config(self) -> APIAdapterConfig:
        """Get typed config."""
        return self.config  # type: ignore[return-value]

    def _validate_config(self) -> None:
        """Validate API configuration."""
        if not self.api_config.base_url:
            raise ValueError(f"API adapter '{self.source_id}' requires base_url")
        if self.api_config.rate_limit_per_second <= 0:
            raise ValueError("rate_limit_per_second must be positive")

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            headers = {
                "User-Agent": "eventradar/0.1",
                "Accept": "application/json",
                **self.api_config.headers,
            }
            if self.api_config.api_key and not self.api_config.api_key_param:
                headers["Authorization"] = f"Bearer {self.api_config.api_key}"
            self._client = httpx.AsyncClient(headers=headers, transport=self._transport)
        return self._client

    async def fetch(self, **kwargs) -> FetchResult:
        """
        Fetch data from the API.

        Args:
            **kwargs: Parameters passed to query_builder
                Common: latitude, longitude, radius_km, page_size

        Returns:
            FetchResult with raw data; failures are reported in ``errors``
        """
        fetch_started = datetime.now(UTC)
        raw_data: list[dict] = []
        errors: list[str] = []
        metadata = {"api_calls": 0}

        try:
            client = self._get_client()

            if self.query_builder:
                params = self.query_builder(**kwargs)
            else:
                params = dict(kwargs)
            if self.api_config.api_key and self.api_config.api_key_param:
                params[self.api_config.api_key_param] = self.api_config.api_key

            response = await self._make_request(client, params, metadata)

            if self.response_parser:
                data = self.response_parser(response)
            else:
                data = self._default_response_parser(response)
            if not isinstance(data, list):
                raise ValueError(f"Expected a list of items, got {type(data).__name__}")

            raw_data.extend(data)
            metadata["total_available"] = self._extract_total_available(response, data)

        except Exception as e:
            self.logger.error(f"API fetch failed: {e}")
            errors.append(str(e) or type(e).__name__)

        return FetchResult(
            source_id=self.source_id,
            raw_data=raw_data,
            errors=errors,
            metadata=metadata,
            fetch_started_at=fetch_started,
            fetch_ended_at=datetime.now(UTC),
        )

    async def _make_request(
        self,
        client: httpx.AsyncClient,
        params: dict,
        metadata: dict,
        retry_count: int = 0,
    ) -> dict:
        """
        Make HTTP request with retry logic.

        Args:
            client: Async HTTP client
            params: Query parameters
            metadata: Fetch metadata, updated with the call count
            retry_count: Current retry attempt

        Returns:
            Response JSON

        Raises:
            httpx.HTTPError: When the request keeps failing after all retries
        """
        try:
            # Rate limiting
            await asyncio.sleep(1.0 / self.api_config.rate_limit_per_second)

            headers = {}
            if self.auth_provider:
                headers = await self.auth_provider(client)

            metadata["api_calls"] += 1
            response = await client.get(
                self.api_config.base_url,
                params=params,
                headers=headers,
                timeout=self.api_config.request_timeout,
            )
            response.raise_for_status()
            return response.json()

        except httpx.HTTPError as e:
            if _is_retryable(e) and retry_count < self.api_config.max_retries:
                wait_time = self.api_config.backoff_base_seconds * 2**retry_count
                self.logger.warning(f"Request failed, retrying in {wait_time}s: {e}")
                await asyncio.sleep(wait_time)
                return await self._make_request(client, params, metadata, retry_count + 1)

            self.logger.error(f"Request failed after {retry_count} retries: {e}")
            raise

    def _extract_total_available(self, response: dict, data: list) -> int:
        """
        Extract total available count from the API response.

        Override in subclasses to navigate source-specific response structures.
        """
        if isinstance(response, dict):
            return response.get("total", len(data))
        return len(data)

    def _default_response_parser(self, response: dict) -> list[dict]:
        """Parse a default response structure into a list of dicts."""
        if isinstance(response, list):
            return response
        if "data" in response:
            return response["data"] if isinstance(response["data"], list) else [response["data"]]
        return [response]

    async def close(self) -> None:
        """Close async HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


def _is_retryable(error: httpx.HTTPError) -> bool:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(error, httpx.TransportError)
