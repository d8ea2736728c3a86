"""Ticketmaster Discovery API v2 provider."""

from __future__ import annotations

import math

from eventradar.ingestion.providers.base import (
    EventProvider,
    coordinates_text,
    parse_datetime,
)
from eventradar.ingestion.providers.registry import register_provider
from eventradar.normalization.currency import CurrencyParser
from eventradar.schemas.event import EventSource, NormalizedEvent

UNDEFINED_CLASSIFICATION = "undefined"


@register_provider("ticketmaster")
class TicketmasterProvider(EventProvider):
    """Events from the Ticketmaster Discovery API (API key sent as a query parameter)."""

    source = EventSource.TICKETMASTER

    def _auth_config(self) -> dict:
        return {
            "api_key": self.credentials.get("TICKETMASTER_API_KEY"),
            "api_key_param": "apikey",
        }

    def build_query(self, latitude: float, longitude: float, radius_km: float) -> dict:
        return {
            "latlong": f"{latitude},{longitude}",
            "radius": max(1, math.ceil(self.config.cap_radius(radius_km))),
            "unit": "km",
            "size": self.config.page_size,
            "sort": "distance,asc",
        }

    def extract_items(self, response: dict) -> list[dict]:
        if not isinstance(response, dict):
            raise ValueError("Ticketmaster response is not an object")
        # No "_embedded" key means no results
        embedded = response.get("_embedded") or {}
        events = embedded.get("events") or []
        if not isinstance(events, list):
            raise ValueError("Ticketmaster '_embedded.events' is not a list")
        return events

    def parse_raw_event(self, raw: dict) -> NormalizedEvent | None:
        title = (raw.get("name") or "").strip()
        if not title:
            return None

        venue = ((raw.get("_embedded") or {}).get("venues") or [{}])[0]
        location = self._venue_location(venue)
        if not location:
            self.logger.debug(f"Skipping '{title}': no venue location")
            return None

        amount, currency = None, None
        price_ranges = raw.get("priceRanges") or []
        if price_ranges:
            price = price_ranges[0]
            amount, currency = CurrencyParser.parse_amount(price.get("min"), price.get("currency"))

        return NormalizedEvent(
            title=title,
            description=raw.get("info") or raw.get("pleaseNote") or raw.get("description"),
            location=location,
            start=self._start(raw.get("dates") or {}),
            source=self.source,
            category=self._category(raw.get("classifications") or []),
            currency_code=currency,
            amount=amount,
            url=raw.get("url"),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _venue_location(venue: dict) -> str | None:
        geo = venue.get("location") or {}
        text = coordinates_text(geo.get("latitude"), geo.get("longitude"))
        if text:
            return text

        parts = [
            venue.get("name"),
            (venue.get("address") or {}).get("line1"),
            (venue.get("city") or {}).get("name"),
        ]
        parts = [p for p in parts if p]
        return ", ".join(parts) if parts else None

    @staticmethod
    def _start(dates: dict):
        start = dates.get("start") or {}
        if start.get("dateTime"):
            return parse_datetime(start["dateTime"])
        if start.get("localDate"):
            local_time = start.get("localTime") or "00:00:00"
            return parse_datetime(f"{start['localDate']}T{local_time}")
        return None

    def _category(self, classifications: list[dict]) -> str | None:
        if not classifications:
            return self.config.default_category
        primary = classifications[0]
        for level in ("genre", "segment"):
            name = ((primary.get(level) or {}).get("name") or "").strip()
            if name and name.lower() != UNDEFINED_CLASSIFICATION:
                return name
        return self.config.default_category
