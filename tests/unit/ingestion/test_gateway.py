"""
Unit tests for the gateway module.

Tests for concurrent provider fan-out and fault isolation.
"""

import asyncio
import time

import pytest

from eventradar.ingestion.gateway import GatewayResult, ProviderGateway, ProviderStatus
from eventradar.schemas.event import EventSource

ORIGIN = (42.36, -71.06)


def run_gateway(gateway, radius_km=50, resolver=None):
    return asyncio.run(gateway.fetch_all_with_report(*ORIGIN, radius_km, resolver))


class TestProviderGateway:
    """Tests for ProviderGateway."""

    def test_merges_in_registration_order(self, make_provider, create_event, normalizer):
        first = make_provider("first", [create_event(title="A", category="music")])
        second = make_provider(
            "second",
            [
                create_event(title="B", source=EventSource.YELP, location="42.40,-71.10"),
                create_event(title="C", source=EventSource.YELP, location="42.50,-71.20"),
            ],
        )
        gateway = ProviderGateway([first, second], normalizer)

        result = run_gateway(gateway)

        assert [e.title for e in result.events] == ["A", "B", "C"]
        assert all(o.status == ProviderStatus.SUCCESS for o in result.outcomes)
        assert first.calls == [(42.36, -71.06, 50)]

    def test_events_are_enriched(self, make_provider, create_event, normalizer):
        provider = make_provider("p", [create_event(title="A", category="music", distance_km=None)])
        result = run_gateway(ProviderGateway([provider], normalizer))

        event = result.events[0]
        assert event.coordinates.latitude == 42.37
        assert event.category == "Music"
        assert event.distance_km == pytest.approx(1.39, abs=0.01)

    def test_failing_provider_isolated(self, make_provider, create_event, normalizer, unavailable):
        good = make_provider("good", [create_event(title="A")])
        bad = make_provider("bad", unavailable("bad"))
        broken = make_provider("broken", RuntimeError("unexpected"))
        gateway = ProviderGateway([bad, good, broken], normalizer)

        result = run_gateway(gateway)

        assert [e.title for e in result.events] == ["A"]
        assert result.failed_providers == ["bad", "broken"]
        assert result.outcomes[0].error == "HTTP 503"
        assert not result.all_failed

    def test_timeout_does_not_block_others(self, make_provider, create_event, normalizer):
        slow = make_provider("slow", "hang", timeout_seconds=0.1)
        fast = make_provider("fast", [create_event(title="A")])
        gateway = ProviderGateway([slow, fast], normalizer)

        started = time.monotonic()
        result = run_gateway(gateway)
        elapsed = time.monotonic() - started

        assert elapsed < 2
        assert [e.title for e in result.events] == ["A"]
        assert result.outcomes[0].status == ProviderStatus.TIMEOUT

    def test_providers_run_concurrently(self, normalizer):
        class SlowProvider:
            def __init__(self, provider_id):
                self.provider_id = provider_id
                self.timeout_seconds = 5

            async def fetch_events(self, latitude, longitude, radius_km):
                await asyncio.sleep(0.3)
                return []

        gateway = ProviderGateway([SlowProvider("a"), SlowProvider("b"), SlowProvider("c")], normalizer)

        started = time.monotonic()
        run_gateway(gateway)
        assert time.monotonic() - started < 0.8

    def test_all_failed(self, make_provider, normalizer, unavailable):
        gateway = ProviderGateway(
            [make_provider("a", unavailable("a")), make_provider("b", unavailable("b"))],
            normalizer,
        )
        result = run_gateway(gateway)
        assert result.events == []
        assert result.all_failed

    def test_no_providers(self, normalizer):
        result = run_gateway(ProviderGateway([], normalizer))
        assert result == GatewayResult()
        assert not result.all_failed

    def test_unresolvable_events_dropped(self, make_provider, create_event, normalizer):
        provider = make_provider(
            "p",
            [create_event(title="A"), create_event(title="B", location="Somewhere vague")],
        )
        result = run_gateway(ProviderGateway([provider], normalizer))

        assert [e.title for e in result.events] == ["A"]
        assert result.outcomes[0].fetched == 2
        assert result.outcomes[0].dropped == 1

    def test_text_locations_use_resolver(self, make_provider, create_event, normalizer, resolver):
        provider = make_provider("p", [create_event(title="A", location="Boston, MA")])
        result = run_gateway(ProviderGateway([provider], normalizer), resolver=resolver)
        assert result.events[0].coordinates.latitude == 42.3601

    def test_fetch_all_returns_events(self, make_provider, create_event, normalizer):
        gateway = ProviderGateway([make_provider("p", [create_event(title="A")])], normalizer)
        events = asyncio.run(gateway.fetch_all(*ORIGIN, 10))
        assert [e.title for e in events] == ["A"]

    def test_cancellation_cancels_providers(self, make_provider, normalizer):
        hanging = make_provider("hang", "hang", timeout_seconds=60)
        gateway = ProviderGateway([hanging], normalizer)

        async def run():
            task = asyncio.create_task(gateway.fetch_all(*ORIGIN, 10))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())
        assert len(hanging.calls) == 1

    def test_close_closes_providers(self, make_provider, normalizer):
        providers = [make_provider("a"), make_provider("b")]
        asyncio.run(ProviderGateway(providers, normalizer).close())
        assert all(p.closed for p in providers)
