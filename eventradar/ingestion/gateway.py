"""
Provider Gateway.

Fans a location search out to every registered provider at once. Each
provider runs under its own timeout; a provider that fails, times out or
returns garbage contributes nothing and the rest of the search carries on.
Results are enriched per item and concatenated in registration order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from eventradar.aggregation.errors import ProviderUnavailableError
from eventradar.geo.resolver import GeoResolver
from eventradar.ingestion.enrichment import EventEnricher
from eventradar.ingestion.providers.base import EventProvider
from eventradar.normalization.categories import CategoryNormalizer
from eventradar.schemas.event import Coordinates, NormalizedEvent


class ProviderStatus(str, Enum):
    """Outcome of one provider call."""

    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"


@dataclass
class ProviderOutcome:
    """What one provider contributed to a search."""

    provider_id: str
    status: ProviderStatus
    started_at: datetime
    ended_at: datetime
    fetched: int = 0
    enriched: int = 0
    error: str | None = None

    @property
    def dropped(self) -> int:
        return self.fetched - self.enriched

    @property
    def duration_seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()


@dataclass
class GatewayResult:
    """Merged provider events plus a per-provider report."""

    events: list[NormalizedEvent] = field(default_factory=list)
    outcomes: list[ProviderOutcome] = field(default_factory=list)

    @property
    def failed_providers(self) -> list[str]:
        return [o.provider_id for o in self.outcomes if o.status != ProviderStatus.SUCCESS]

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and len(self.failed_providers) == len(self.outcomes)


class ProviderGateway:
    """
    Concurrent fan-out over registered providers.

    The gateway never branches on provider type; it only uses the
    EventProvider interface.
    """

    def __init__(self, providers: list[EventProvider], normalizer: CategoryNormalizer):
        self.providers = list(providers)
        self.normalizer = normalizer
        self.logger = logging.getLogger("gateway")

    async def fetch_all(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        resolver: GeoResolver | None = None,
    ) -> list[NormalizedEvent]:
        """
        Fetch, enrich and merge events from all providers.

        Never raises for provider failures; a failed provider contributes an
        empty list.
        """
        result = await self.fetch_all_with_report(latitude, longitude, radius_km, resolver)
        return result.events

    async def fetch_all_with_report(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        resolver: GeoResolver | None = None,
    ) -> GatewayResult:
        """
        Same as fetch_all, but also reports what each provider did.

        Args:
            latitude, longitude: Search origin
            radius_km: Search radius passed to providers
            resolver: Per-request GeoResolver; parse-only when omitted

        Returns:
            GatewayResult with events in provider registration order
        """
        if resolver is None:
            resolver = GeoResolver(enabled=False)

        origin = Coordinates(latitude=latitude, longitude=longitude)
        enricher = EventEnricher(resolver, self.normalizer, origin)

        # Cancellation of this coroutine cancels every provider task
        runs = await asyncio.gather(
            *(self._run_provider(p, origin, radius_km, enricher) for p in self.providers)
        )

        result = GatewayResult()
        for events, outcome in runs:
            result.events.extend(events)
            result.outcomes.append(outcome)

        self.logger.info(
            f"Fetched {len(result.events)} events from {len(self.providers)} providers "
            f"({len(result.failed_providers)} failed)"
        )
        return result

    async def _run_provider(
        self,
        provider: EventProvider,
        origin: Coordinates,
        radius_km: float,
        enricher: EventEnricher,
    ) -> tuple[list[NormalizedEvent], ProviderOutcome]:
        started = datetime.now(UTC)
        provider_id = provider.provider_id

        try:
            events = await asyncio.wait_for(
                provider.fetch_events(origin.latitude, origin.longitude, radius_km),
                timeout=provider.timeout_seconds,
            )
        except asyncio.TimeoutError:
            self.logger.warning(
                f"Provider '{provider_id}' timed out after {provider.timeout_seconds}s"
            )
            return [], self._outcome(
                provider_id, ProviderStatus.TIMEOUT, started, error="timeout"
            )
        except ProviderUnavailableError as e:
            self.logger.warning(str(e))
            return [], self._outcome(
                provider_id, ProviderStatus.FAILED, started, error=e.reason
            )
        except Exception as e:
            self.logger.error(f"Provider '{provider_id}' failed: {e}", exc_info=True)
            return [], self._outcome(provider_id, ProviderStatus.FAILED, started, error=str(e))

        enriched = await enricher.enrich_all(events, provider_id)
        return enriched, self._outcome(
            provider_id,
            ProviderStatus.SUCCESS,
            started,
            fetched=len(events),
            enriched=len(enriched),
        )

    @staticmethod
    def _outcome(provider_id, status, started, **kwargs) -> ProviderOutcome:
        return ProviderOutcome(
            provider_id=provider_id,
            status=status,
            started_at=started,
            ended_at=datetime.now(UTC),
            **kwargs,
        )

    async def close(self) -> None:
        """Close every provider's HTTP resources."""
        for provider in self.providers:
            try:
                await provider.close()
            except Exception as e:
                self.logger.warning(f"Error closing provider '{provider.provider_id}': {e}")
