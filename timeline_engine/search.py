from __future__ import annotations

import re
from datetime import date
from typing import List, Optional, Sequence

from .formatting import format_event_date
from .models import Event, SearchResult
from .stats import UNCATEGORISED


def _find_all(haystack: str, needle: str) -> List[List[int]]:
    # matched on the untouched text; lower() may change its length
    if not needle:
        return []
    pattern = re.compile(re.escape(needle), re.IGNORECASE)
    return [[match.start(), match.end()] for match in pattern.finditer(haystack)]


def _apply_query(event: Event, query: str, matched_fields: set[str]) -> List[List[int]]:
    highlights = _find_all(event.content, query)
    if highlights:
        matched_fields.add("content")

    if query in format_event_date(event).lower():
        matched_fields.add("date")

    if query in event.lane.lower():
        matched_fields.add("lane")

    return highlights


def search_events(
    events: Sequence[Event],
    *,
    query: str = "",
    categories: Optional[Sequence[str]] = None,
    lanes: Optional[Sequence[str]] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[SearchResult]:
    """Filter events and report where the query matched, in input order.

    ``categories`` keeps only events whose category is listed (``"none"`` stands for
    uncategorised events); ``None`` disables that filter. The date range is
    inclusive and drops sentinel-dated events.
    """
    needle = query.strip().lower()
    category_filters = None if categories is None else {category.lower() for category in categories}
    lane_filters = None if lanes is None else set(lanes)

    results: List[SearchResult] = []
    for index, event in enumerate(events):
        matched_fields: set[str] = set()

        if category_filters is not None and (event.category or UNCATEGORISED) not in category_filters:
            continue
        if lane_filters is not None and event.lane not in lane_filters:
            continue

        if date_from or date_to:
            if not event.is_valid:
                continue
            event_day = event.date.date()
            if date_from and event_day < date_from:
                continue
            if date_to and event_day > date_to:
                continue

        highlights: List[List[int]] = []
        if needle:
            highlights = _apply_query(event, needle, matched_fields)
            if not matched_fields:
                continue

        results.append(
            SearchResult(
                index=index,
                event=event,
                matched_fields=sorted(matched_fields),
                highlights=highlights,
            )
        )

    return results


__all__ = ["search_events"]
