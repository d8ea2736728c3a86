"""
Unit tests for the event schema module.

Tests for Coordinates, NormalizedEvent, SearchCriteria, HostEventRecord and
SessionRow validation.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from eventradar.aggregation.errors import InvalidCriteriaError
from eventradar.schemas.event import (
    Coordinates,
    EventSource,
    HostEventRecord,
    NormalizedEvent,
    SearchCriteria,
    SessionRow,
)


class TestCoordinates:
    """Tests for Coordinates validation."""

    def test_valid(self):
        coords = Coordinates(latitude=42.36, longitude=-71.06)
        assert coords.as_text() == "42.36,-71.06"

    @pytest.mark.parametrize("lat, lon", [(90.1, 0), (-90.1, 0), (0, 180.5), (0, -181)])
    def test_out_of_range(self, lat, lon):
        with pytest.raises(ValidationError):
            Coordinates(latitude=lat, longitude=lon)


class TestNormalizedEvent:
    """Tests for NormalizedEvent."""

    def test_defaults(self):
        event = NormalizedEvent(title="Jazz Night", location="42.37,-71.05", source="Ticketmaster")
        assert event.category == "Other"
        assert event.coordinates is None
        assert event.distance_km is None
        assert event.source == EventSource.TICKETMASTER

    def test_blank_title_rejected(self):
        with pytest.raises(ValidationError):
            NormalizedEvent(title="   ", location="x", source=EventSource.HOST)

    def test_naive_start_is_utc(self, create_event):
        event = create_event(start=datetime(2026, 1, 1, 12, 0))
        assert event.start.tzinfo is not None
        assert event.start.utcoffset() == timedelta(0)

    def test_aware_start_converted_to_utc(self, create_event):
        tz = timezone(timedelta(hours=-5))
        event = create_event(start=datetime(2026, 1, 1, 7, 0, tzinfo=tz))
        assert event.start == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert event.start.utcoffset() == timedelta(0)

    def test_amount_coerced_to_decimal(self, create_event):
        event = create_event(amount=12.5, currency_code="usd")
        assert event.amount == Decimal("12.5")
        assert event.currency_code == "USD"

    def test_negative_amount_rejected(self, create_event):
        with pytest.raises(ValidationError):
            create_event(amount=-1)

    def test_negative_distance_rejected_on_assignment(self, create_event):
        event = create_event()
        with pytest.raises(ValidationError):
            event.distance_km = -0.5

    def test_amount_without_currency_allowed(self, create_event):
        event = create_event(amount=10, currency_code=None)
        assert event.amount == Decimal("10")
        assert event.currency_code is None

    def test_dedup_key(self, create_event):
        event = create_event(title="A", location="L", source=EventSource.YELP)
        assert event.dedup_key == ("A", "L", "Yelp")

    def test_host_marker(self, create_event):
        assert create_event(source=EventSource.HOST).is_host_event
        assert not create_event(source=EventSource.YELP).is_host_event

    def test_json_dump_serializes_amount_as_float(self, create_event):
        data = create_event(amount=Decimal("20.00")).model_dump(mode="json")
        assert data["amount"] == 20.0
        assert data["source"] == "Ticketmaster"


class TestSearchCriteria:
    """Tests for SearchCriteria validation."""

    def test_defaults(self):
        criteria = SearchCriteria()
        assert criteria.max_distance_km == 100
        assert criteria.max_price is None
        assert criteria.resolve_addresses is False

    def test_inverted_window_rejected(self):
        with pytest.raises(InvalidCriteriaError):
            SearchCriteria(
                start_after=datetime(2026, 5, 2, tzinfo=timezone.utc),
                start_before=datetime(2026, 5, 1, tzinfo=timezone.utc),
            )

    def test_equal_bounds_allowed(self):
        moment = datetime(2026, 5, 1, tzinfo=timezone.utc)
        criteria = SearchCriteria(start_after=moment, start_before=moment)
        assert criteria.start_after == criteria.start_before

    def test_inverted_window_rejected_on_assignment(self):
        criteria = SearchCriteria(start_after=datetime(2026, 5, 2, tzinfo=timezone.utc))
        with pytest.raises(InvalidCriteriaError):
            criteria.start_before = datetime(2026, 5, 1, tzinfo=timezone.utc)

    def test_negative_distance_rejected(self):
        with pytest.raises(ValidationError):
            SearchCriteria(max_distance_km=-1)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            SearchCriteria(max_price=-1)

    def test_blank_strings_become_none(self):
        criteria = SearchCriteria(category="  ", origin_text="")
        assert criteria.category is None
        assert criteria.origin_text is None

    def test_naive_bounds_are_utc(self):
        criteria = SearchCriteria(start_after=datetime(2026, 5, 1))
        assert criteria.start_after.tzinfo is not None


class TestHostEventRecord:
    """Tests for HostEventRecord."""

    def test_stored_coordinates(self):
        record = HostEventRecord(title="Fair", latitude=42.4, longitude=-71.1)
        assert record.stored_coordinates == Coordinates(latitude=42.4, longitude=-71.1)

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            HostEventRecord(title="")

    def test_partial_coordinates_ignored(self):
        assert HostEventRecord(title="Fair", latitude=42.4).stored_coordinates is None

    def test_invalid_coordinates_ignored(self):
        record = HostEventRecord(title="Fair", latitude=142.4, longitude=-71.1)
        assert record.stored_coordinates is None


class TestSessionRow:
    """Tests for SessionRow projection."""

    def test_from_event_prefers_address(self, create_event):
        event = create_event(address="1 Jazz Way", distance_km=1.2)
        row = SessionRow.from_event(1, event)
        assert row.content_id == 1
        assert row.location == "1 Jazz Way"
        assert row.distance_km == 1.2

    def test_from_event_without_address(self, create_event):
        row = SessionRow.from_event(3, create_event(location="42.37,-71.05"))
        assert row.location == "42.37,-71.05"

    def test_content_id_starts_at_one(self, create_event):
        with pytest.raises(ValidationError):
            SessionRow.from_event(0, create_event())
