"""
Geo Resolver.

Turns free-text locations into coordinates and coordinates back into display
addresses. ``"lat,lon"`` strings are parsed locally without touching the
geocoding provider; everything else goes through a geopy geocoder
(Nominatim by default, rate-limited). Lookups are memoized per resolver,
misses included, and a failed lookup never raises: callers get ``None`` and
exclude the record.
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
from typing import Any

from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from eventradar.schemas.event import Coordinates

logger = logging.getLogger(__name__)

_MISSING = object()


class GeoResolver:
    """
    Resolve locations with caching and failure tolerance.

    One resolver is created per search request; blocking geocoder calls run in
    worker threads, so the cache is guarded by a threading lock.
    """

    def __init__(
        self,
        geocoder: Any | None = None,
        *,
        enabled: bool = True,
        timeout_seconds: float = 10.0,
        min_delay_seconds: float = 1.0,
        user_agent: str = "eventradar-aggregator",
        language: str = "en",
    ) -> None:
        self.enabled = enabled
        self.timeout_seconds = timeout_seconds
        self.min_delay_seconds = min_delay_seconds
        self.user_agent = user_agent
        self.language = language

        self._geocoder = geocoder
        self._geocode_fn = None
        self._reverse_fn = None
        self._cache: dict[tuple, Any] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Fast path
    # ------------------------------------------------------------------

    @staticmethod
    def parse_coordinates(text: str | None) -> Coordinates | None:
        """
        Parse a ``"lat,lon"`` string.

        Exactly two comma-separated parts are required, both finite floats
        within coordinate range; anything else returns ``None``.
        """
        if not text or "," not in text:
            return None

        parts = text.strip().split(",")
        if len(parts) != 2:
            return None

        try:
            lat = float(parts[0].strip())
            lon = float(parts[1].strip())
        except ValueError:
            return None

        if not (math.isfinite(lat) and math.isfinite(lon)):
            return None

        try:
            return Coordinates(latitude=lat, longitude=lon)
        except ValueError:
            return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve_to_coordinates(self, text: str | None) -> Coordinates | None:
        """
        Resolve free text (or a ``"lat,lon"`` string) to coordinates.

        Returns ``None`` when the text is empty, geocoding is disabled, the
        geocoder finds nothing, fails or times out.
        """
        text = (text or "").strip()
        if not text:
            logger.info("Geocode miss: empty location text")
            return None

        parsed = self.parse_coordinates(text)
        if parsed is not None:
            return parsed

        if not self.enabled:
            logger.info("Geocode miss (geocoding disabled): %s", text)
            return None

        key = ("forward", text.lower())
        cached = self._cache_get(key)
        if cached is not _MISSING:
            return cached

        coords = await self._run_with_timeout(self._geocode_blocking, text)
        if coords is None:
            logger.info("Geocode miss: %s", text)

        self._cache_put(key, coords)
        return coords

    async def resolve_to_address(self, latitude: float, longitude: float) -> str:
        """
        Reverse-geocode coordinates to a formatted address.

        Falls back to the ``"lat,lon"`` string itself when no address can be
        found.
        """
        fallback = f"{latitude},{longitude}"
        if not self.enabled:
            return fallback

        key = ("reverse", round(latitude, 6), round(longitude, 6))
        cached = self._cache_get(key)
        if cached is not _MISSING:
            return cached or fallback

        address = await self._run_with_timeout(
            self._reverse_blocking, latitude, longitude
        )
        if address is None:
            logger.info("Reverse geocode miss: %s", fallback)

        self._cache_put(key, address)
        return address or fallback

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    # ------------------------------------------------------------------
    # Blocking geocoder calls (run in worker threads)
    # ------------------------------------------------------------------

    def _geocode_blocking(self, query: str) -> Coordinates | None:
        try:
            location = self._get_geocode_fn()(query, exactly_one=True)
            if location is None:
                logger.debug("Geocoder returned no result for query: %s", query)
                return None
            return Coordinates(latitude=location.latitude, longitude=location.longitude)
        except Exception:
            logger.warning("Geocoding failed for query: %s", query, exc_info=True)
            return None

    def _reverse_blocking(self, latitude: float, longitude: float) -> str | None:
        try:
            location = self._get_reverse_fn()(
                (latitude, longitude), exactly_one=True, language=self.language
            )
            if location is None:
                return None
            return location.address or None
        except Exception:
            logger.warning(
                "Reverse geocoding failed for %s,%s", latitude, longitude, exc_info=True
            )
            return None

    async def _run_with_timeout(self, func, *args):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Geocoder call timed out after %.1fs: %s", self.timeout_seconds, args
            )
            return None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_geocoder(self):
        """Lazy-initialize the Nominatim geocoder."""
        if self._geocoder is None:
            self._geocoder = Nominatim(
                user_agent=self.user_agent, timeout=self.timeout_seconds
            )
        return self._geocoder

    def _get_geocode_fn(self):
        """Lazy-initialize the rate-limited forward lookup."""
        if self._geocode_fn is None:
            self._geocode_fn = self._rate_limited(self._get_geocoder().geocode)
        return self._geocode_fn

    def _get_reverse_fn(self):
        """Lazy-initialize the rate-limited reverse lookup."""
        if self._reverse_fn is None:
            self._reverse_fn = self._rate_limited(self._get_geocoder().reverse)
        return self._reverse_fn

    def _rate_limited(self, func):
        if self.min_delay_seconds <= 0:
            return func
        return RateLimiter(func, min_delay_seconds=self.min_delay_seconds)

    def _cache_get(self, key: tuple):
        with self._lock:
            return self._cache.get(key, _MISSING)

    def _cache_put(self, key: tuple, value: Any) -> None:
        with self._lock:
            self._cache[key] = value


def create_resolver(settings, geocoding_config: dict | None = None) -> GeoResolver:
    """
    Build a GeoResolver from application settings and the ``geocoding`` config block.

    Args:
        settings: Application Settings
        geocoding_config: ``geocoding`` section of aggregation.yaml

    Returns:
        A fresh resolver with an empty cache
    """
    geocoding_config = geocoding_config or {}
    return GeoResolver(
        enabled=settings.GEOCODING_ENABLED,
        timeout_seconds=settings.GEOCODING_TIMEOUT_SECONDS,
        min_delay_seconds=float(geocoding_config.get("min_delay_seconds", 1.0)),
        user_agent=settings.GEOCODING_USER_AGENT,
        language=geocoding_config.get("reverse_language", "en"),
    )
