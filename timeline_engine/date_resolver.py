from __future__ import annotations

import logging
import re
import warnings
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Union

from dateutil import parser as dateutil_parser
from dateutil.parser import UnknownTimezoneWarning
from dateutil.relativedelta import relativedelta

from .models import SENTINEL_DATE

logger = logging.getLogger("timeline_engine.date_resolver")

MONTH_NAME_TO_INDEX = {
    "januar": 0,
    "jan": 0,
    "februar": 1,
    "feb": 1,
    "märz": 2,
    "mär": 2,
    "mar": 2,
    "april": 3,
    "apr": 3,
    "mai": 4,
    "may": 4,
    "juni": 5,
    "jun": 5,
    "juli": 6,
    "jul": 6,
    "august": 7,
    "aug": 7,
    "september": 8,
    "sep": 8,
    "oktober": 9,
    "okt": 9,
    "oct": 9,
    "november": 10,
    "nov": 10,
    "dezember": 11,
    "dez": 11,
    "dec": 11,
}

QUARTER_PATTERN = re.compile(r"^Q(?P<quarter>[1-4])\s*(?P<year>\d{4})$", re.IGNORECASE)
QUARTER_YEAR_FIRST_PATTERN = re.compile(r"^(?P<year>\d{4})\s*Q(?P<quarter>[1-4])$", re.IGNORECASE)
MONTH_NAME_PATTERN = re.compile(r"^(?P<month>[a-zäöüß]+)\s*(?P<year>\d{4})$", re.IGNORECASE)
MONTH_NAME_YEAR_FIRST_PATTERN = re.compile(r"^(?P<year>\d{4})\s*(?P<month>[a-zäöüß]+)$", re.IGNORECASE)
DAY_MONTH_YEAR_PATTERN = re.compile(r"^(?P<day>\d{1,2})\.(?P<month>\d{1,2})\.(?P<year>\d{4})")
TIME_PATTERN = re.compile(r"(?P<hour>\d{1,2}):(?P<minute>\d{1,2})(?::(?P<second>\d{1,2}))?")

# Missing components in free-form tokens fall back to the first of January.
_GENERIC_DEFAULT = datetime(2000, 1, 1)
_GENERIC_CHECK_DEFAULT = datetime(2001, 1, 1)


@dataclass(frozen=True)
class ResolvedDate:
    instant: datetime
    display_label: Optional[str] = None
    has_explicit_time: bool = False


@dataclass(frozen=True)
class DateFailure:
    token: str
    reason: str = "unrecognised date format"


DateResult = Union[ResolvedDate, DateFailure]
DateParser = Callable[[str], Optional[ResolvedDate]]


def is_sentinel(value: Optional[datetime]) -> bool:
    return value == SENTINEL_DATE


def _parse_quarter(token: str) -> Optional[ResolvedDate]:
    match = QUARTER_PATTERN.match(token) or QUARTER_YEAR_FIRST_PATTERN.match(token)
    if not match:
        return None
    quarter = int(match.group("quarter"))
    year = int(match.group("year"))
    try:
        instant = datetime(year, (quarter - 1) * 3 + 1, 1)
    except ValueError:
        return None
    return ResolvedDate(instant=instant, display_label=f"Q{quarter} {year}")


def _parse_month_name(token: str) -> Optional[ResolvedDate]:
    match = MONTH_NAME_PATTERN.match(token) or MONTH_NAME_YEAR_FIRST_PATTERN.match(token)
    if not match:
        return None
    month_name = match.group("month")
    month_index = MONTH_NAME_TO_INDEX.get(month_name.lower())
    if month_index is None:
        return None
    year = int(match.group("year"))
    try:
        instant = datetime(year, month_index + 1, 1)
    except ValueError:
        return None
    label = f"{month_name[0].upper()}{month_name[1:]} {year}"
    return ResolvedDate(instant=instant, display_label=label)


def _parse_with_default(token: str, default: datetime) -> datetime:
    with warnings.catch_warnings():
        # an unknown timezone name means the token was not a date
        warnings.simplefilter("error", UnknownTimezoneWarning)
        return dateutil_parser.parse(token, default=default)


def _parse_generic(token: str) -> Optional[ResolvedDate]:
    # D.M.YYYY is ambiguous for a locale-neutral parser; it belongs to the fallback.
    if DAY_MONTH_YEAR_PATTERN.match(token):
        return None
    try:
        parsed = _parse_with_default(token, _GENERIC_DEFAULT)
        # a year taken from the default differs between the two parses
        if _parse_with_default(token, _GENERIC_CHECK_DEFAULT).year != parsed.year:
            return None
    except (ValueError, OverflowError, UnknownTimezoneWarning):
        return None
    if parsed.tzinfo is not None:
        try:
            parsed = parsed.astimezone().replace(tzinfo=None)
        except (ValueError, OverflowError):
            return None
    return ResolvedDate(instant=parsed, has_explicit_time=":" in token)


def _parse_day_month_year(token: str) -> Optional[ResolvedDate]:
    """Parse ``D.M.YYYY [H:MM[:SS]]``.

    Day and month are not range checked: like the calendar arithmetic of most date
    libraries, ``32.1.2025`` rolls over to the 1st of February.
    """
    match = DAY_MONTH_YEAR_PATTERN.match(token)
    if not match:
        return None
    day = int(match.group("day"))
    month = int(match.group("month"))
    year = int(match.group("year"))

    hour = minute = second = 0
    has_time = False
    time_match = TIME_PATTERN.search(token, match.end())
    if time_match:
        hour = int(time_match.group("hour"))
        minute = int(time_match.group("minute"))
        second = int(time_match.group("second") or 0)
        has_time = True

    try:
        instant = datetime(year, 1, 1) + relativedelta(
            months=month - 1,
            days=day - 1,
            hours=hour,
            minutes=minute,
            seconds=second,
        )
    except (ValueError, OverflowError):
        return None
    return ResolvedDate(instant=instant, has_explicit_time=has_time)


DATE_PARSERS: Sequence[DateParser] = (
    _parse_quarter,
    _parse_month_name,
    _parse_generic,
    _parse_day_month_year,
)


def first_success(parsers: Sequence[DateParser], token: str) -> Optional[ResolvedDate]:
    for parse in parsers:
        result = parse(token)
        if result is not None:
            return result
    return None


def resolve_date(token: str, parsers: Sequence[DateParser] = DATE_PARSERS) -> DateResult:
    """Resolve a single date token, trying each grammar rule in order.

    Never raises; an unrecognised token yields a :class:`DateFailure`.
    """
    candidate = (token or "").strip()
    if not candidate:
        return DateFailure(token=token or "", reason="empty date value")
    resolved = first_success(parsers, candidate)
    if resolved is None:
        logger.debug("Date parsing failed for %r", candidate)
        return DateFailure(token=candidate)
    return resolved


__all__ = [
    "DATE_PARSERS",
    "DateFailure",
    "DateResult",
    "MONTH_NAME_TO_INDEX",
    "ResolvedDate",
    "SENTINEL_DATE",
    "first_success",
    "is_sentinel",
    "resolve_date",
]
