from __future__ import annotations

from datetime import date, datetime

from .document_parser import parse_document
from .stats import UNCATEGORISED, compute_statistics

DOCUMENT = """title: Stats
date: 2025-01-10
class: meeting
group: Team
Kickoff
---
date: 2025-03-01
end_date: 2025-04-01
class: work
group: Dev
Build
---
date: 2025-08-01
class: party
Release
---
No date
"""


def test_counts_split_around_today():
    document = parse_document(DOCUMENT)
    stats = compute_statistics(document.events, today=date(2025, 3, 1))
    assert stats.total == 4
    assert stats.past == 1
    assert stats.upcoming == 2
    assert stats.duration == 1


def test_categories_include_uncategorised_bucket():
    document = parse_document(DOCUMENT)
    stats = compute_statistics(document.events, today=date(2025, 3, 1))
    assert stats.by_category["meeting"] == 1
    assert stats.by_category["work"] == 1
    assert stats.by_category["critical"] == 0
    # unknown class values are dropped, sentinel events are not counted
    assert stats.by_category[UNCATEGORISED] == 1


def test_lanes_and_date_range_ignore_sentinel_dates():
    document = parse_document(DOCUMENT)
    stats = compute_statistics(document.events, today=datetime(2025, 3, 1, 18, 0))
    assert stats.lanes == ["Team", "Dev", "Default"]
    assert stats.date_from == datetime(2025, 1, 10)
    assert stats.date_to == datetime(2025, 8, 1)


def test_custom_category_list():
    document = parse_document(DOCUMENT)
    stats = compute_statistics(document.events, today=date(2025, 1, 1), categories=("meeting",))
    assert set(stats.by_category) == {"meeting", "work", UNCATEGORISED}


def test_empty_input():
    stats = compute_statistics([], today=date(2025, 1, 1))
    assert stats.total == 0
    assert stats.lanes == []
    assert stats.date_from is None
    assert stats.date_to is None
