"""Unit tests for EventEnricher."""

import asyncio

import pytest

from eventradar.ingestion.enrichment import EventEnricher
from eventradar.schemas.event import Coordinates, EventSource

ORIGIN = Coordinates(latitude=42.36, longitude=-71.06)


@pytest.fixture
def enricher(resolver, normalizer):
    return EventEnricher(resolver, normalizer, ORIGIN)


class TestEnrich:
    """Tests for EventEnricher.enrich."""

    def test_coordinate_location(self, enricher, create_event):
        event = asyncio.run(enricher.enrich(create_event(category="music"), "ticketmaster"))
        assert event.coordinates == Coordinates(latitude=42.37, longitude=-71.05)
        assert event.category == "Music"
        assert event.distance_km == pytest.approx(1.39, abs=0.01)

    def test_geocoded_location(self, enricher, create_event):
        event = asyncio.run(enricher.enrich(create_event(location="Boston, MA")))
        assert event.coordinates.latitude == 42.3601

    def test_existing_coordinates_kept(self, enricher, create_event, fake_geocoder):
        coords = Coordinates(latitude=42.40, longitude=-71.10)
        event = asyncio.run(
            enricher.enrich(create_event(location="Anywhere", coordinates=coords))
        )
        assert event.coordinates == coords
        fake_geocoder.geocode.assert_not_called()

    def test_unresolvable_excluded(self, enricher, create_event):
        assert asyncio.run(enricher.enrich(create_event(location="Atlantis"))) is None

    def test_origin_never_substituted(self, enricher, create_event):
        event = create_event(location="Atlantis")
        asyncio.run(enricher.enrich(event))
        assert event.coordinates is None
        assert event.distance_km is None

    def test_provider_override_applied(self, enricher, create_event):
        event = create_event(source=EventSource.AMADEUS, category="tours-activities")
        assert asyncio.run(enricher.enrich(event, "amadeus")).category == "Tours"


class TestEnrichAll:
    """Tests for EventEnricher.enrich_all."""

    def test_keeps_order_and_drops_unresolved(self, enricher, create_event):
        events = [
            create_event(title="A"),
            create_event(title="B", location="Atlantis"),
            create_event(title="C", location="Boston, MA"),
        ]
        result = asyncio.run(enricher.enrich_all(events))
        assert [e.title for e in result] == ["A", "C"]

    def test_item_error_skipped(self, enricher, create_event):
        async def boom(text):
            raise RuntimeError("resolver exploded")

        enricher.resolver.resolve_to_coordinates = boom
        events = [
            create_event(title="A", coordinates=Coordinates(latitude=42.37, longitude=-71.05)),
            create_event(title="B", location="Boston, MA"),
        ]
        result = asyncio.run(enricher.enrich_all(events))
        assert [e.title for e in result] == ["A"]


class TestAttachAddresses:
    """Tests for EventEnricher.attach_addresses."""

    def test_reverse_geocodes_coordinate_locations(self, enricher, create_event):
        events = [create_event(location="42.37,-71.05"), create_event(location="Boston, MA")]
        asyncio.run(enricher.attach_addresses(events))
        assert events[0].address == "1 Jazz Way, Boston, MA"
        assert events[1].address is None

    def test_unknown_address_falls_back_to_coordinates(self, enricher, create_event):
        event = create_event(location="10.0,20.0")
        asyncio.run(enricher.attach_addresses([event]))
        assert event.address == "10.0,20.0"
