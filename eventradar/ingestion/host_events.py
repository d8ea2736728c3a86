"""
Host Event Store.

Reads events submitted directly by platform users and gives each one
coordinates. Stored coordinates are authoritative; otherwise the location
text goes through the GeoResolver. Records that cannot be placed are left
out of the result.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import psycopg2
from psycopg2.extras import RealDictCursor

from eventradar.aggregation.errors import HostStoreUnavailableError
from eventradar.geo.resolver import GeoResolver
from eventradar.schemas.event import EventSource, HostEventRecord, NormalizedEvent

logger = logging.getLogger(__name__)


# ============================================================================
# REPOSITORIES
# ============================================================================


class HostEventRepository(ABC):
    """Read-only access to stored host events."""

    @abstractmethod
    def list_records(self) -> list[HostEventRecord]:
        """Return every stored host event (blocking)."""


class InMemoryHostEventRepository(HostEventRepository):
    """Host events held in a list; used for tests and local runs."""

    def __init__(self, records: list[HostEventRecord] | None = None):
        self._records = list(records or [])

    def add(self, record: HostEventRecord) -> None:
        self._records.append(record)

    def list_records(self) -> list[HostEventRecord]:
        return list(self._records)


class PostgresHostEventRepository(HostEventRepository):
    """Host events read from the ``host_events`` table via psycopg2."""

    QUERY = """
        SELECT id, title, description, location, latitude, longitude,
               start, category, currency_code, amount, url,
               host_user_id, created_at
        FROM host_events
        ORDER BY id
    """

    def __init__(self, conn_params: dict):
        """
        Args:
            conn_params: psycopg2 connection arguments
                (see Settings.get_psycopg2_params)
        """
        self.conn_params = conn_params

    @classmethod
    def from_settings(cls, settings) -> "PostgresHostEventRepository":
        return cls(settings.get_psycopg2_params())

    def list_records(self) -> list[HostEventRecord]:
        conn = psycopg2.connect(**self.conn_params)
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(self.QUERY)
                rows = cur.fetchall()
        finally:
            conn.close()

        records = []
        for row in rows:
            try:
                records.append(HostEventRecord.model_validate(dict(row)))
            except ValueError as e:
                logger.warning(f"Skipping invalid host event row {row.get('id')}: {e}")
        return records


# ============================================================================
# STORE
# ============================================================================


class HostEventStore:
    """Turns stored host events into located NormalizedEvents."""

    def __init__(self, repository: HostEventRepository):
        self.repository = repository

    async def list_all(self, resolver: GeoResolver) -> list[NormalizedEvent]:
        """
        Load host events and resolve their coordinates.

        Args:
            resolver: Per-request GeoResolver

        Returns:
            Host events with coordinates set; category not yet canonical

        Raises:
            HostStoreUnavailableError: If the repository cannot be read
        """
        try:
            records = await asyncio.to_thread(self.repository.list_records)
        except Exception as e:
            raise HostStoreUnavailableError(f"Host event repository failed: {e}") from e

        events: list[NormalizedEvent] = []
        for record in records:
            coords = record.stored_coordinates
            if coords is None:
                coords = await resolver.resolve_to_coordinates(record.location)
            if coords is None:
                logger.info(
                    f"Excluding host event '{record.title}': "
                    f"location '{record.location}' could not be resolved"
                )
                continue

            try:
                event = NormalizedEvent(
                    title=record.title,
                    description=record.description,
                    location=record.location or coords.as_text(),
                    coordinates=coords,
                    start=record.start,
                    source=EventSource.HOST,
                    category=record.category,
                    currency_code=record.currency_code,
                    amount=record.amount,
                    url=record.url,
                )
            except ValueError as e:
                logger.warning(f"Skipping invalid host event {record.id}: {e}")
                continue
            events.append(event)

        logger.info(f"Loaded {len(events)} of {len(records)} host events")
        return events
