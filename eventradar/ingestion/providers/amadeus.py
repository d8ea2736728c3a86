"""Amadeus Tours & Activities provider."""

from __future__ import annotations

import asyncio
import math
import time

import httpx

from eventradar.ingestion.adapters import APIAdapter
from eventradar.ingestion.providers.base import EventProvider, coordinates_text
from eventradar.ingestion.providers.registry import register_provider
from eventradar.normalization.currency import CurrencyParser
from eventradar.schemas.event import EventSource, NormalizedEvent

# Refresh the access token this many seconds before it expires
TOKEN_EXPIRY_MARGIN_SECONDS = 30


@register_provider("amadeus")
class AmadeusProvider(EventProvider):
    """
    Tours and activities from the Amadeus self-service API.

    Requests are authorized with an OAuth2 client-credentials token that is
    fetched on first use and refreshed shortly before it expires. Activities
    carry no start time.
    """

    source = EventSource.AMADEUS

    def __init__(self, config, credentials=None, transport=None):
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()
        super().__init__(config, credentials, transport=transport)

    def _create_adapter(self, transport: httpx.AsyncBaseTransport | None) -> APIAdapter:
        return APIAdapter(
            self._adapter_config(),
            query_builder=self.build_query,
            response_parser=self.extract_items,
            auth_provider=self._auth_headers,
            transport=transport,
        )

    @property
    def token_url(self) -> str:
        return self.config.extra.get("token_url", "")

    async def _auth_headers(self, client: httpx.AsyncClient) -> dict[str, str]:
        token = await self._get_token(client)
        return {"Authorization": f"Bearer {token}"}

    async def _get_token(self, client: httpx.AsyncClient) -> str:
        async with self._token_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            response = await client.post(
                self.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.credentials.get("AMADEUS_CLIENT_ID") or "",
                    "client_secret": self.credentials.get("AMADEUS_CLIENT_SECRET") or "",
                },
                timeout=self.config.request_timeout,
            )
            response.raise_for_status()
            payload = response.json()

            self._token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 1799))
            self._token_expires_at = (
                time.monotonic() + expires_in - TOKEN_EXPIRY_MARGIN_SECONDS
            )
            self.logger.debug("Obtained new access token")
            return self._token

    def build_query(self, latitude: float, longitude: float, radius_km: float) -> dict:
        return {
            "latitude": latitude,
            "longitude": longitude,
            "radius": max(1, math.ceil(self.config.cap_radius(radius_km))),
        }

    def extract_items(self, response: dict) -> list[dict]:
        if not isinstance(response, dict) or not isinstance(response.get("data", []), list):
            raise ValueError("Amadeus response has no 'data' list")
        return response.get("data") or []

    def parse_raw_event(self, raw: dict) -> NormalizedEvent | None:
        title = (raw.get("name") or "").strip()
        if not title:
            return None

        geo = raw.get("geoCode") or {}
        location = coordinates_text(geo.get("latitude"), geo.get("longitude"))
        if location is None:
            self.logger.debug(f"Skipping '{title}': no geoCode")
            return None

        price = raw.get("price") or {}
        amount, currency = CurrencyParser.parse_amount(
            price.get("amount"), price.get("currencyCode")
        )

        return NormalizedEvent(
            title=title,
            description=raw.get("shortDescription") or raw.get("description"),
            location=location,
            start=None,
            source=self.source,
            category=self.config.default_category,
            currency_code=currency,
            amount=amount,
            url=raw.get("bookingLink"),
        )
