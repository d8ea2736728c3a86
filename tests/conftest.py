"""
Shared pytest fixtures for the eventradar test suite.

Provides factories for NormalizedEvent objects, a fake geopy-style geocoder
and stub providers that stand in for real HTTP-backed ones.
"""

import asyncio
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from eventradar.aggregation.errors import ProviderUnavailableError
from eventradar.geo.resolver import GeoResolver
from eventradar.normalization.categories import CategoryNormalizer
from eventradar.schemas.event import EventSource, NormalizedEvent


@pytest.fixture
def create_event():
    """
    Return a function that creates NormalizedEvent objects with sensible defaults.

    All defaults can be overridden via keyword arguments.

    Example:
        event = create_event(title="Jazz Night", distance_km=3.2)
    """

    def _create_event(
        title: str = "Test Event",
        location: str = "42.37,-71.05",
        source: EventSource = EventSource.TICKETMASTER,
        **kwargs,
    ) -> NormalizedEvent:
        defaults = {
            "title": title,
            "description": "A test event",
            "location": location,
            "source": source,
            "category": "Music",
            "start": datetime(2026, 6, 15, 20, 0, tzinfo=timezone.utc),
            "url": "https://example.com/event",
        }
        defaults.update(kwargs)
        return NormalizedEvent(**defaults)

    return _create_event


@pytest.fixture
def sample_events(create_event):
    """Return a list of 3 distinct enriched events."""
    return [
        create_event(title="Event A", location="42.37,-71.05", distance_km=1.4),
        create_event(title="Event B", location="42.40,-71.10", distance_km=5.5),
        create_event(title="Event C", location="42.50,-71.20", distance_km=19.2),
    ]


@pytest.fixture
def duplicate_events(create_event):
    """Return 4 events where the first and third share (title, location, source)."""
    return [
        create_event(title="Event A", description="first", distance_km=1.0),
        create_event(title="Event B", distance_km=2.0),
        create_event(title="Event A", description="second", distance_km=1.0),
        create_event(title="Event C", distance_km=3.0),
    ]


# =============================================================================
# GEOCODING
# =============================================================================


def make_geocoder(known: dict | None = None, addresses: dict | None = None):
    """
    Build a MagicMock geocoder with the geopy ``geocode``/``reverse`` signature.

    Args:
        known: query -> (lat, lon)
        addresses: (lat, lon) -> address string
    """
    known = known or {}
    addresses = addresses or {}
    geocoder = MagicMock()

    def geocode(query, exactly_one=True, **kwargs):
        if query not in known:
            return None
        lat, lon = known[query]
        return SimpleNamespace(latitude=lat, longitude=lon, address=query)

    def reverse(point, exactly_one=True, **kwargs):
        address = addresses.get(tuple(point))
        if address is None:
            return None
        return SimpleNamespace(latitude=point[0], longitude=point[1], address=address)

    geocoder.geocode.side_effect = geocode
    geocoder.reverse.side_effect = reverse
    return geocoder


@pytest.fixture
def fake_geocoder():
    return make_geocoder(
        known={
            "Boston, MA": (42.3601, -71.0589),
            "City Hall Plaza, Boston": (42.3603, -71.0580),
        },
        addresses={(42.37, -71.05): "1 Jazz Way, Boston, MA"},
    )


@pytest.fixture
def resolver(fake_geocoder):
    """GeoResolver backed by the fake geocoder, without rate limiting."""
    return GeoResolver(fake_geocoder, min_delay_seconds=0, timeout_seconds=2.0)


@pytest.fixture
def normalizer():
    """CategoryNormalizer built from the shipped category_mapping.yaml."""
    return CategoryNormalizer.from_config()


# =============================================================================
# PROVIDERS
# =============================================================================


class StubProvider:
    """
    In-process provider with the EventProvider interface.

    ``behavior`` may be a list of events, an exception to raise, or
    ``"hang"`` to never return.
    """

    def __init__(self, provider_id, behavior=None, timeout_seconds=1.0):
        self.provider_id = provider_id
        self.timeout_seconds = timeout_seconds
        self.behavior = behavior if behavior is not None else []
        self.calls = []
        self.closed = False

    async def fetch_events(self, latitude, longitude, radius_km):
        self.calls.append((latitude, longitude, radius_km))
        if self.behavior == "hang":
            await asyncio.sleep(3600)
        if isinstance(self.behavior, BaseException):
            raise self.behavior
        return [event.model_copy() for event in self.behavior]

    async def close(self):
        self.closed = True


@pytest.fixture
def make_provider():
    """Factory for StubProvider instances."""

    def _make_provider(provider_id="stub", behavior=None, timeout_seconds=1.0):
        return StubProvider(provider_id, behavior, timeout_seconds)

    return _make_provider


@pytest.fixture
def unavailable():
    """Factory for ProviderUnavailableError instances."""

    def _unavailable(provider_id="stub", reason="HTTP 503"):
        return ProviderUnavailableError(provider_id, reason)

    return _unavailable
