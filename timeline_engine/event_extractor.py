from __future__ import annotations

import re
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from .date_resolver import ResolvedDate, resolve_date
from .models import SENTINEL_DATE, Event
from .settings import Settings, settings as default_settings
from .tokenizer import LINE_BREAK_PATTERN, Block

DATE_LINE_PATTERN = re.compile(r"^date:\s*(?P<value>.*)$", re.IGNORECASE)
END_DATE_LINE_PATTERN = re.compile(r"^end_date:\s*(?P<value>.*)$", re.IGNORECASE)
CLASS_LINE_PATTERN = re.compile(r"^class:\s*(?P<value>.*)$", re.IGNORECASE)
LANE_LINE_PATTERN = re.compile(r"^(?:group|lane):\s*(?P<value>.*)$", re.IGNORECASE)
WORD_PATTERN = re.compile(r"\w+")


class ExtractorConfig(BaseModel):
    """Enumerations and messages used while extracting events from blocks."""

    model_config = ConfigDict(frozen=True)

    categories: Tuple[str, ...] = ("critical", "warning", "success", "meeting", "work")
    default_lane: str = "Default"
    missing_date_message: str = "**Fehler:** Kein Datum gefunden."
    invalid_date_message: str = "**Fehler:** Ungültiges Datum: `{value}`"

    @field_validator("categories")
    @classmethod
    def _lowercase(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(category.lower() for category in value)

    @field_validator("default_lane")
    @classmethod
    def _non_empty_lane(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("default_lane must not be empty")
        return cleaned

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "ExtractorConfig":
        source = source or default_settings
        return cls(categories=tuple(source.event_categories), default_lane=source.default_lane)


DEFAULT_EXTRACTOR_CONFIG = ExtractorConfig()


def _normalise_category(raw: str, config: ExtractorConfig) -> Optional[str]:
    match = WORD_PATTERN.match(raw.lstrip())
    if not match:
        return None
    candidate = match.group().lower()
    if candidate in config.categories:
        return candidate
    return None


def extract_event(block: Block, config: ExtractorConfig = DEFAULT_EXTRACTOR_CONFIG) -> Event:
    """Turn one block into an :class:`Event`.

    Metadata lines (``date:``, ``end_date:``, ``class:``, ``group:``/``lane:``) are
    consumed; every other line is kept as content in its original order. A missing
    or unparseable date never raises: the event receives the sentinel date and an
    error notice is prepended to its content.
    """
    date_value: Optional[str] = None
    resolved: Optional[ResolvedDate] = None
    end_date = None
    category: Optional[str] = None
    lane = config.default_lane
    content_lines: List[str] = []

    for line in LINE_BREAK_PATTERN.split(block.text.strip()):
        match = DATE_LINE_PATTERN.match(line)
        if match:
            date_value = match.group("value").strip() or None
            resolved = None
            if date_value:
                result = resolve_date(date_value)
                if isinstance(result, ResolvedDate):
                    resolved = result
            continue

        match = END_DATE_LINE_PATTERN.match(line)
        if match:
            end_value = match.group("value").strip()
            end_result = resolve_date(end_value) if end_value else None
            end_date = end_result.instant if isinstance(end_result, ResolvedDate) else None
            continue

        match = CLASS_LINE_PATTERN.match(line)
        if match:
            category = _normalise_category(match.group("value"), config)
            continue

        match = LANE_LINE_PATTERN.match(line)
        if match:
            lane = match.group("value").strip() or config.default_lane
            continue

        content_lines.append(line)

    content = "\n".join(content_lines).strip()

    if resolved is not None:
        return Event(
            date=resolved.instant,
            end_date=end_date,
            display_label=resolved.display_label,
            has_explicit_time=resolved.has_explicit_time,
            category=category,
            lane=lane,
            content=content,
            source_start=block.start,
            source_end=block.end,
        )

    if date_value:
        notice = config.invalid_date_message.format(value=date_value)
    else:
        notice = config.missing_date_message
    return Event(
        date=SENTINEL_DATE,
        end_date=end_date,
        category=category,
        lane=lane,
        content=f"{notice}\n\n{content}" if content else notice,
        source_start=block.start,
        source_end=block.end,
    )


__all__ = ["DEFAULT_EXTRACTOR_CONFIG", "ExtractorConfig", "extract_event"]
