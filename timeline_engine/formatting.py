from __future__ import annotations

import math
from datetime import datetime

from .models import SENTINEL_DATE, Event, EventLabels

INVALID_EVENT_LABEL = "Fehlerhaftes Event"
WEEKDAY_NAMES = (
    "Montag",
    "Dienstag",
    "Mittwoch",
    "Donnerstag",
    "Freitag",
    "Samstag",
    "Sonntag",
)


def format_event_date(event: Event) -> str:
    """Badge text for an event date (``15.01.2025`` or ``15.01.2025 14:30``)."""
    if not event.is_valid:
        return INVALID_EVENT_LABEL
    if event.display_label:
        return event.display_label
    formatted = event.date.strftime("%d.%m.%Y")
    if event.has_explicit_time:
        formatted += " " + event.date.strftime("%H:%M")
    return formatted


def weekday_label(value: datetime) -> str:
    if value == SENTINEL_DATE:
        return ""
    return WEEKDAY_NAMES[value.weekday()]


def _plural(count: int, singular: str, plural: str) -> str:
    return f"1 {singular}" if count == 1 else f"{count} {plural}"


def duration_label(start: datetime, end: datetime) -> str:
    """Coarse German description of the span between two instants."""
    days = math.floor((end - start).total_seconds() / 86_400)
    if days < 1:
        return "< 1 Tag"
    if days < 7:
        return _plural(days, "Tag", "Tage")
    if days < 30:
        return _plural(days // 7, "Woche", "Wochen")
    if days < 365:
        return _plural(days // 30, "Monat", "Monate")
    return _plural(days // 365, "Jahr", "Jahre")


def event_labels(event: Event) -> EventLabels:
    duration = None
    if event.is_valid and event.has_duration:
        duration = duration_label(event.date, event.end_date)
    return EventLabels(
        date_label=format_event_date(event),
        weekday=weekday_label(event.date),
        duration=duration,
    )


__all__ = [
    "INVALID_EVENT_LABEL",
    "duration_label",
    "event_labels",
    "format_event_date",
    "weekday_label",
]
