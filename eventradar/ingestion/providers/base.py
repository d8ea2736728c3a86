"""
Base Event Provider.

An EventProvider turns one external API into a list of NormalizedEvent
objects. The gateway only ever talks to this interface, so adding a provider
means adding a subclass and registering it; the gateway does not change.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from eventradar.aggregation.errors import ProviderUnavailableError
from eventradar.ingestion.adapters import APIAdapter, APIAdapterConfig
from eventradar.schemas.event import EventSource, NormalizedEvent


@dataclass
class ProviderConfig:
    """Connection and default settings for one provider, read from aggregation.yaml."""

    provider_id: str
    endpoint: str
    enabled: bool = True
    timeout_seconds: float = 10.0
    request_timeout: float = 8.0
    max_retries: int = 2
    rate_limit_per_second: float = 5.0
    backoff_base_seconds: float = 1.0
    page_size: int = 50
    max_radius_km: float | None = None
    default_category: str | None = None
    default_currency: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, provider_id: str, data: dict) -> "ProviderConfig":
        known = {
            "endpoint",
            "enabled",
            "timeout_seconds",
            "request_timeout",
            "max_retries",
            "rate_limit_per_second",
            "backoff_base_seconds",
            "page_size",
            "max_radius_km",
            "default_category",
            "default_currency",
        }
        kwargs = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(provider_id=provider_id, extra=extra, **kwargs)

    def cap_radius(self, radius_km: float) -> float:
        if self.max_radius_km is None:
            return radius_km
        return min(radius_km, float(self.max_radius_km))


class EventProvider(ABC):
    """
    Abstract base class for external event providers.

    Subclasses must implement:
        - build_query(): Provider query parameters for a location search
        - extract_items(): Pull the raw item list out of a response
        - parse_raw_event(): Map one raw item to a NormalizedEvent

    Providers encode event coordinates in ``location`` as ``"lat,lon"`` and
    leave ``coordinates`` unset; the enrichment step resolves them.
    """

    source: EventSource

    def __init__(
        self,
        config: ProviderConfig,
        credentials: dict[str, str | None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the provider.

        Args:
            config: ProviderConfig for this provider
            credentials: Credential values keyed by settings name
            transport: Optional httpx transport (used for mocking in tests)
        """
        self.config = config
        self.credentials = credentials or {}
        self.logger = logging.getLogger(f"provider.{config.provider_id}")
        self.adapter = self._create_adapter(transport)

    @property
    def provider_id(self) -> str:
        return self.config.provider_id

    @property
    def timeout_seconds(self) -> float:
        return self.config.timeout_seconds

    def _adapter_config(self, **overrides) -> APIAdapterConfig:
        return APIAdapterConfig(
            source_id=self.provider_id,
            base_url=self.config.endpoint,
            request_timeout=self.config.request_timeout,
            max_retries=self.config.max_retries,
            rate_limit_per_second=self.config.rate_limit_per_second,
            backoff_base_seconds=self.config.backoff_base_seconds,
            **overrides,
        )

    def _auth_config(self) -> dict:
        """Static credential settings for the adapter (api_key, api_key_param)."""
        return {}

    def _create_adapter(self, transport: httpx.AsyncBaseTransport | None) -> APIAdapter:
        """Build the HTTP adapter; override to add dynamic auth."""
        return APIAdapter(
            self._adapter_config(**self._auth_config()),
            query_builder=self.build_query,
            response_parser=self.extract_items,
            transport=transport,
        )

    # ========================================================================
    # PROVIDER-SPECIFIC HOOKS
    # ========================================================================

    @abstractmethod
    def build_query(self, latitude: float, longitude: float, radius_km: float) -> dict:
        """Build query parameters for a search around a point."""

    @abstractmethod
    def extract_items(self, response: dict) -> list[dict]:
        """
        Extract the raw event list from an API response.

        Raises:
            ValueError: If the response does not have the expected shape
        """

    @abstractmethod
    def parse_raw_event(self, raw: dict) -> NormalizedEvent | None:
        """
        Map one raw item to a NormalizedEvent (category not yet canonical).

        Returns None for items that should be skipped.
        """

    # ========================================================================
    # FETCH
    # ========================================================================

    async def fetch_events(
        self, latitude: float, longitude: float, radius_km: float
    ) -> list[NormalizedEvent]:
        """
        Fetch and parse events around a point.

        Malformed items are skipped; a failed fetch raises.

        Raises:
            ProviderUnavailableError: If the provider could not be queried
        """
        result = await self.adapter.fetch(
            latitude=latitude, longitude=longitude, radius_km=radius_km
        )
        if not result.success:
            raise ProviderUnavailableError(self.provider_id, "; ".join(result.errors))

        events: list[NormalizedEvent] = []
        skipped = 0
        for raw in result.raw_data:
            try:
                event = self.parse_raw_event(raw)
            except Exception as e:
                self.logger.warning(f"Skipping malformed item: {e}")
                skipped += 1
                continue
            if event is None:
                skipped += 1
                continue
            events.append(event)

        self.logger.info(
            f"Fetched {len(events)} events ({skipped} skipped) "
            f"in {result.duration_seconds:.2f}s"
        )
        return events

    async def close(self) -> None:
        await self.adapter.close()


# ============================================================================
# PARSING HELPERS
# ============================================================================


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601-ish timestamp; None when absent or unparseable."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def coordinates_text(latitude: Any, longitude: Any) -> str | None:
    """Format a provider lat/lon pair as ``"lat,lon"``; None if either part is missing."""
    if latitude in (None, "") or longitude in (None, ""):
        return None
    try:
        return f"{float(latitude)},{float(longitude)}"
    except (TypeError, ValueError):
        return None
