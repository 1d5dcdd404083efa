from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Sequence

from .layout_engine import DateLike, distinct_lanes
from .models import Event, EventStatistics

UNCATEGORISED = "none"


def compute_statistics(
    events: Sequence[Event],
    today: Optional[DateLike] = None,
    categories: Sequence[str] = ("critical", "warning", "success", "meeting", "work"),
) -> EventStatistics:
    """Summarise parsed events; sentinel-dated events only count towards ``total``."""
    reference = today if today is not None else datetime.now()
    if isinstance(reference, datetime):
        reference = reference.date()

    by_category: Dict[str, int] = {category: 0 for category in categories}
    by_category[UNCATEGORISED] = 0
    upcoming = past = duration = 0
    valid = [event for event in events if event.is_valid]

    for event in valid:
        if event.date.date() >= reference:
            upcoming += 1
        else:
            past += 1
        if event.end_date is not None:
            duration += 1
        key = event.category or UNCATEGORISED
        by_category[key] = by_category.get(key, 0) + 1

    return EventStatistics(
        total=len(events),
        upcoming=upcoming,
        past=past,
        duration=duration,
        by_category=by_category,
        lanes=distinct_lanes(events),
        date_from=min((event.date for event in valid), default=None),
        date_to=max((event.date for event in valid), default=None),
    )


__all__ = ["UNCATEGORISED", "compute_statistics"]
