"""
Event deduplication.

Two events are the same record when ``(title, location, source)`` match
exactly, case included. The first occurrence wins.
"""

from abc import ABC, abstractmethod

from eventradar.schemas.event import NormalizedEvent


class EventDeduplicator(ABC):
    """Abstract base for deduplication strategies."""

    @abstractmethod
    def deduplicate(self, events: list[NormalizedEvent]) -> list[NormalizedEvent]:
        """Deduplicate events and return unique set, preserving order."""


class ExactMatchDeduplicator(EventDeduplicator):
    """Match by title + location + source (exact)."""

    def deduplicate(self, events: list[NormalizedEvent]) -> list[NormalizedEvent]:
        """
        Deduplicate events using exact matching on title, location and source.

        Returns:
            List of unique events (first occurrence kept)
        """
        seen = set()
        unique_events = []

        for event in events:
            key = event.dedup_key

            if key not in seen:
                seen.add(key)
                unique_events.append(event)

        return unique_events
