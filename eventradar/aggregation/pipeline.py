"""
Aggregation Pipeline.

Merges enriched provider and host events into one ranked list:

1. concatenate (providers first, then host events)
2. deduplicate on (title, location, source), first wins
3. distance filter (events without a distance are dropped; boundary inclusive)
4. category filter (case-insensitive)
5. price filter (unknown prices never pass an active price filter)
6. time window (unknown start times never pass an active window)
7. stable sort by ascending distance
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from eventradar.aggregation.deduplication import EventDeduplicator, ExactMatchDeduplicator
from eventradar.schemas.event import NormalizedEvent, SearchCriteria


@dataclass
class AggregationReport:
    """Counters from one aggregation run, for logging."""

    provider_events: int = 0
    host_events: int = 0
    duplicates: int = 0
    filtered: dict[str, int] = field(default_factory=dict)
    returned: int = 0

    @property
    def total_input(self) -> int:
        return self.provider_events + self.host_events


class AggregationPipeline:
    """Merge, deduplicate, filter and rank enriched events."""

    def __init__(self, deduplicator: EventDeduplicator | None = None):
        self.deduplicator = deduplicator or ExactMatchDeduplicator()
        self.logger = logging.getLogger("aggregation")

    def aggregate(
        self,
        criteria: SearchCriteria,
        provider_events: list[NormalizedEvent],
        host_events: list[NormalizedEvent],
    ) -> list[NormalizedEvent]:
        """Produce the ranked result for one search, without the report."""
        events, _ = self.aggregate_with_report(criteria, provider_events, host_events)
        return events

    def aggregate_with_report(
        self,
        criteria: SearchCriteria,
        provider_events: list[NormalizedEvent],
        host_events: list[NormalizedEvent],
    ) -> tuple[list[NormalizedEvent], AggregationReport]:
        """
        Produce the ranked result for one search and the counters behind it.

        Args:
            criteria: Validated search criteria
            provider_events: Enriched events from the gateway, in order
            host_events: Enriched host events

        Returns:
            Tuple of (events sorted by ascending distance, AggregationReport)

        Raises:
            InvalidCriteriaError: If the criteria are malformed
        """
        criteria.ensure_valid()

        report = AggregationReport(
            provider_events=len(provider_events), host_events=len(host_events)
        )

        events = list(provider_events) + list(host_events)

        unique = self.deduplicator.deduplicate(events)
        report.duplicates = len(events) - len(unique)
        events = unique

        events = self._apply(report, "distance", events, self._within_distance(criteria))

        if criteria.category:
            wanted = criteria.category.casefold()
            events = self._apply(
                report, "category", events, lambda e: e.category.casefold() == wanted
            )

        if criteria.max_price is not None:
            max_price = criteria.max_price
            events = self._apply(
                report,
                "price",
                events,
                lambda e: e.amount is not None and e.amount <= max_price,
            )

        if criteria.start_after is not None or criteria.start_before is not None:
            events = self._apply(report, "time_window", events, self._within_window(criteria))

        # sorted() is stable: equal distances keep arrival order
        events = sorted(events, key=lambda e: e.distance_km)

        report.returned = len(events)
        self.logger.info(
            f"Aggregated {report.total_input} events: {report.duplicates} duplicates, "
            f"filtered {report.filtered}, returned {report.returned}"
        )
        return events, report

    @staticmethod
    def _apply(report: AggregationReport, stage: str, events, predicate):
        kept = [e for e in events if predicate(e)]
        report.filtered[stage] = len(events) - len(kept)
        return kept

    @staticmethod
    def _within_distance(criteria: SearchCriteria):
        def predicate(event: NormalizedEvent) -> bool:
            return event.distance_km is not None and event.distance_km <= criteria.max_distance_km

        return predicate

    @staticmethod
    def _within_window(criteria: SearchCriteria):
        def predicate(event: NormalizedEvent) -> bool:
            if event.start is None:
                return False
            if criteria.start_after is not None and event.start < criteria.start_after:
                return False
            if criteria.start_before is not None and event.start > criteria.start_before:
                return False
            return True

        return predicate
