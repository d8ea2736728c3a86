"""
Event Search Service.

Request-level orchestration of one search:

1. validate criteria (before any provider call)
2. resolve the origin (coordinates, else geocoded origin text)
3. fetch provider and host events concurrently, with a fresh GeoResolver
4. enrich host events, aggregate, optionally attach display addresses
5. materialize the result for the user's session
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial

from eventradar.aggregation.errors import HostStoreUnavailableError, OriginUnresolvedError
from eventradar.aggregation.pipeline import AggregationPipeline, AggregationReport
from eventradar.configs.config import Config
from eventradar.geo.resolver import GeoResolver, create_resolver
from eventradar.ingestion.enrichment import EventEnricher
from eventradar.ingestion.gateway import GatewayResult, ProviderGateway
from eventradar.ingestion.host_events import (
    HostEventStore,
    InMemoryHostEventRepository,
    PostgresHostEventRepository,
)
from eventradar.ingestion.providers import create_providers_from_config
from eventradar.normalization.categories import CategoryNormalizer
from eventradar.schemas.event import (
    Coordinates,
    NormalizedEvent,
    SearchCriteria,
    SessionHandle,
)
from eventradar.sessions.materializer import SessionMaterializer, create_session_store
from eventradar.utils.logging import with_context
from eventradar.utils.resilience import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """Everything one search produced."""

    events: list[NormalizedEvent]
    origin: Coordinates
    handle: SessionHandle | None = None
    gateway: GatewayResult = field(default_factory=GatewayResult)
    report: AggregationReport | None = None
    host_store_available: bool = True


class EventSearchService:
    """Runs searches and session logout for the aggregation core."""

    def __init__(
        self,
        gateway: ProviderGateway,
        host_store: HostEventStore | None,
        materializer: SessionMaterializer,
        normalizer: CategoryNormalizer,
        resolver_factory: Callable[[], GeoResolver] | None = None,
        pipeline: AggregationPipeline | None = None,
    ):
        self.gateway = gateway
        self.host_store = host_store
        self.materializer = materializer
        self.normalizer = normalizer
        self.resolver_factory = resolver_factory or GeoResolver
        self.pipeline = pipeline or AggregationPipeline()

    async def search(
        self,
        user_id: str,
        criteria: SearchCriteria,
        request_id: str | None = None,
    ) -> SearchResult:
        """
        Search events around the user's origin and materialize the result.

        Args:
            user_id: Session owner
            criteria: Search criteria (origin or origin_text required)
            request_id: Correlation id for logs; generated when omitted

        Returns:
            SearchResult with events sorted by ascending distance

        Raises:
            InvalidCriteriaError: If the criteria are malformed
            OriginUnresolvedError: If no origin coordinates can be established
        """
        criteria.ensure_valid()

        request_id = request_id or uuid.uuid4().hex[:12]
        log = with_context(logger, request_id=request_id, user_id=user_id)
        generation = self.materializer.current_generation(user_id)

        resolver = self.resolver_factory()
        origin = await self._resolve_origin(criteria, resolver)
        log.info(
            f"Searching within {criteria.max_distance_km} km of "
            f"{origin.latitude},{origin.longitude}"
        )

        gateway_result, host_events = await asyncio.gather(
            self.gateway.fetch_all_with_report(
                origin.latitude, origin.longitude, criteria.max_distance_km, resolver
            ),
            self._load_host_events(resolver, log),
        )
        host_available = host_events is not None

        enricher = EventEnricher(resolver, self.normalizer, origin)
        enriched_host = await enricher.enrich_all(host_events or [])

        events, report = self.pipeline.aggregate_with_report(
            criteria, gateway_result.events, enriched_host
        )

        if criteria.resolve_addresses:
            await enricher.attach_addresses(events)

        handle = await self.materializer.materialize(user_id, events, generation=generation)

        log.info(
            f"Search returned {len(events)} events "
            f"(failed providers: {gateway_result.failed_providers or 'none'})"
        )
        return SearchResult(
            events=events,
            origin=origin,
            handle=handle,
            gateway=gateway_result,
            report=report,
            host_store_available=host_available,
        )

    async def logout(self, user_id: str) -> bool:
        """Release the user's materialized result. Idempotent."""
        return await self.materializer.release(user_id)

    async def close(self) -> None:
        await self.gateway.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _resolve_origin(
        self, criteria: SearchCriteria, resolver: GeoResolver
    ) -> Coordinates:
        if criteria.origin is not None:
            return criteria.origin

        if criteria.origin_text:
            origin = await resolver.resolve_to_coordinates(criteria.origin_text)
            if origin is not None:
                return origin

        raise OriginUnresolvedError(criteria.origin_text)

    async def _load_host_events(self, resolver: GeoResolver, log) -> list[NormalizedEvent] | None:
        if self.host_store is None:
            return []
        try:
            return await self.host_store.list_all(resolver)
        except HostStoreUnavailableError as e:
            log.warning(f"Host events unavailable, continuing without them: {e}")
            return None


def build_search_service(settings, config: dict | None = None, transport=None) -> EventSearchService:
    """
    Wire an EventSearchService from settings and aggregation.yaml.

    Args:
        settings: Application Settings
        config: Parsed aggregation.yaml; loaded from Config when omitted
        transport: Optional httpx transport shared by all providers

    Returns:
        Ready-to-use EventSearchService
    """
    if config is None:
        config = Config.load_aggregation_config()

    normalizer = CategoryNormalizer.from_config()
    providers = create_providers_from_config(config, settings, transport=transport)
    gateway = ProviderGateway(providers, normalizer)

    if settings.DATABASE_URL:
        repository = PostgresHostEventRepository.from_settings(settings)
    else:
        logger.info("DATABASE_URL not set; using an empty in-memory host event repository")
        repository = InMemoryHostEventRepository()

    retry_policy = RetryPolicy.from_dict((config.get("sessions") or {}).get("retry"))
    materializer = SessionMaterializer(create_session_store(settings), retry_policy)

    return EventSearchService(
        gateway=gateway,
        host_store=HostEventStore(repository),
        materializer=materializer,
        normalizer=normalizer,
        resolver_factory=partial(create_resolver, settings, config.get("geocoding")),
    )
