"""
Per-item event enrichment.

Gives each event coordinates (through the GeoResolver), a canonical category
and its distance from the search origin. Events whose location cannot be
resolved are dropped; the origin is never used as a stand-in.
"""

from __future__ import annotations

import logging

from eventradar.geo.distance import distance_between
from eventradar.geo.resolver import GeoResolver
from eventradar.normalization.categories import CategoryNormalizer
from eventradar.schemas.event import Coordinates, NormalizedEvent

logger = logging.getLogger(__name__)


class EventEnricher:
    """Enrich events relative to one search origin."""

    def __init__(
        self,
        resolver: GeoResolver,
        normalizer: CategoryNormalizer,
        origin: Coordinates,
    ):
        self.resolver = resolver
        self.normalizer = normalizer
        self.origin = origin

    async def enrich(
        self, event: NormalizedEvent, provider_id: str | None = None
    ) -> NormalizedEvent | None:
        """
        Enrich a single event in place.

        Args:
            event: Event as produced by a provider or the host store
            provider_id: Provider whose category overrides apply

        Returns:
            The same event, or None if its location could not be resolved
        """
        if event.coordinates is None:
            coords = await self.resolver.resolve_to_coordinates(event.location)
            if coords is None:
                logger.info(
                    f"Excluding '{event.title}' ({event.source}): "
                    f"location '{event.location}' could not be resolved"
                )
                return None
            event.coordinates = coords

        event.category = self.normalizer.normalize(event.category, provider_id)
        event.distance_km = distance_between(self.origin, event.coordinates)
        return event

    async def enrich_all(
        self, events: list[NormalizedEvent], provider_id: str | None = None
    ) -> list[NormalizedEvent]:
        """Enrich events in order, dropping the ones that cannot be resolved."""
        enriched = []
        for event in events:
            try:
                result = await self.enrich(event, provider_id)
            except Exception as e:
                logger.error(f"Failed to enrich '{event.title}': {e}", exc_info=True)
                continue
            if result is not None:
                enriched.append(result)
        return enriched

    async def attach_addresses(self, events: list[NormalizedEvent]) -> None:
        """Reverse-geocode ``"lat,lon"`` locations into display addresses."""
        for event in events:
            coords = self.resolver.parse_coordinates(event.location)
            if coords is None:
                continue
            event.address = await self.resolver.resolve_to_address(
                coords.latitude, coords.longitude
            )
