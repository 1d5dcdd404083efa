from __future__ import annotations

from datetime import date

from fastapi.testclient import TestClient

from . import app as app_module
from .document_parser import parse_document
from .search import search_events

DOCUMENT = """title: Roadmap
date: 2025-01-15
class: meeting
group: Team
Kickoff mit dem Team, Kickoff-Folien
---
date: 2025-03-01
class: work
group: Dev
Implementierung
---
date: Q3 2025
group: Dev
Release
---
Ohne Datum
"""


def _post_search(payload: dict) -> dict:
    with TestClient(app_module.app) as client:
        response = client.post("/api/search", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def test_query_highlights_every_content_match():
    events = parse_document(DOCUMENT).events
    results = search_events(events, query="kickoff")
    assert len(results) == 1
    result = results[0]
    assert result.index == 0
    assert result.matched_fields == ["content"]
    for start, end in result.highlights:
        assert result.event.content[start:end].lower() == "kickoff"
    assert len(result.highlights) == 2


def test_query_matches_date_label_and_lane():
    events = parse_document(DOCUMENT).events
    assert [r.index for r in search_events(events, query="q3")] == [2]
    assert search_events(events, query="q3")[0].matched_fields == ["date"]
    assert [r.index for r in search_events(events, query="01.03.2025")] == [1]
    assert [r.index for r in search_events(events, query="dev")] == [1, 2]


def test_empty_query_keeps_everything():
    events = parse_document(DOCUMENT).events
    results = search_events(events, query="  ")
    assert [r.index for r in results] == [0, 1, 2, 3]
    assert all(r.highlights == [] for r in results)


def test_category_filter_with_uncategorised_bucket():
    events = parse_document(DOCUMENT).events
    assert [r.index for r in search_events(events, categories=["meeting"])] == [0]
    assert [r.index for r in search_events(events, categories=["none"])] == [2, 3]
    assert search_events(events, categories=[]) == []


def test_lane_filter():
    events = parse_document(DOCUMENT).events
    assert [r.index for r in search_events(events, lanes=["Default"])] == [3]


def test_date_range_is_inclusive_and_drops_sentinel_dates():
    events = parse_document(DOCUMENT).events
    results = search_events(events, date_from=date(2025, 1, 15), date_to=date(2025, 3, 1))
    assert [r.index for r in results] == [0, 1]
    assert [r.index for r in search_events(events, date_from=date(2000, 1, 1))] == [0, 1, 2]


def test_search_endpoint_combines_filters() -> None:
    data = _post_search(
        {
            "text": DOCUMENT,
            "query": "release",
            "categories": ["NONE"],
            "date_from": "2025-06-01",
        }
    )
    assert data["total_events"] == 4
    assert data["total_matches"] == 1
    result = data["results"][0]
    assert result["index"] == 2
    assert result["event"]["display_label"] == "Q3 2025"
    assert result["matched_fields"] == ["content"]


def test_search_endpoint_without_matches() -> None:
    data = _post_search({"text": DOCUMENT, "query": "does-not-occur"})
    assert data["total_matches"] == 0
    assert data["results"] == []


def test_highlights_address_content_with_case_folding_prefix():
    events = parse_document("date: 2025-05-01\nİstanbul Treffen, treffen").events
    result = search_events(events, query="treffen")[0]
    assert len(result.highlights) == 2
    for start, end in result.highlights:
        assert result.event.content[start:end].lower() == "treffen"
