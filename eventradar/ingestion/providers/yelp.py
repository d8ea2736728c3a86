"""Yelp Fusion Events provider."""

from __future__ import annotations

from eventradar.ingestion.providers.base import (
    EventProvider,
    coordinates_text,
    parse_datetime,
)
from eventradar.ingestion.providers.registry import register_provider
from eventradar.normalization.currency import CurrencyParser
from eventradar.schemas.event import EventSource, NormalizedEvent

# Yelp rejects radius values above 40 000 m
MAX_RADIUS_METERS = 40_000


@register_provider("yelp")
class YelpProvider(EventProvider):
    """Events from the Yelp Events API (bearer token auth)."""

    source = EventSource.YELP

    def _auth_config(self) -> dict:
        return {"api_key": self.credentials.get("YELP_API_KEY")}

    def build_query(self, latitude: float, longitude: float, radius_km: float) -> dict:
        radius_m = int(self.config.cap_radius(radius_km) * 1000)
        return {
            "latitude": latitude,
            "longitude": longitude,
            "radius": max(1, min(radius_m, MAX_RADIUS_METERS)),
            "limit": self.config.page_size,
            "sort_on": "time_start",
            "sort_by": "asc",
        }

    def extract_items(self, response: dict) -> list[dict]:
        if not isinstance(response, dict) or not isinstance(response.get("events", []), list):
            raise ValueError("Yelp response has no 'events' list")
        return response.get("events") or []

    def parse_raw_event(self, raw: dict) -> NormalizedEvent | None:
        title = (raw.get("name") or "").strip()
        if not title:
            return None

        location = coordinates_text(raw.get("latitude"), raw.get("longitude"))
        if location is None:
            display = (raw.get("location") or {}).get("display_address") or []
            location = ", ".join(display)
        if not location:
            self.logger.debug(f"Skipping '{title}': no location")
            return None

        if raw.get("is_free"):
            amount, currency = CurrencyParser.parse_amount("free", self.config.default_currency)
        else:
            amount, currency = CurrencyParser.parse_amount(
                raw.get("cost"), self.config.default_currency
            )

        return NormalizedEvent(
            title=title,
            description=raw.get("description"),
            location=location,
            start=parse_datetime(raw.get("time_start")),
            source=self.source,
            category=raw.get("category") or self.config.default_category,
            currency_code=currency,
            amount=amount,
            url=raw.get("event_site_url") or raw.get("tickets_url"),
        )
