from __future__ import annotations

import itertools
from datetime import date, datetime, timedelta
from typing import List, Optional

from .document_parser import parse_document
from .layout_engine import (
    ConnectorOptions,
    compute_connectors,
    compute_order,
    suggest_lane_mode,
    today_insert_index,
)
from .models import SENTINEL_DATE, Event, ItemGeometry

TODAY = date(2025, 6, 15)


def _event(
    when: datetime,
    content: str = "",
    lane: str = "Default",
    end: Optional[datetime] = None,
    position: int = 0,
) -> Event:
    return Event(
        date=when,
        end_date=end,
        lane=lane,
        content=content,
        source_start=position,
        source_end=position + 1,
    )


def _geometry(*tops: float, height: float = 50.0) -> List[ItemGeometry]:
    return [ItemGeometry(top=top, height=height) for top in tops]


def test_events_are_sorted_by_date():
    events = [
        _event(datetime(2025, 3, 1), "march"),
        _event(datetime(2025, 1, 1), "january"),
        _event(datetime(2025, 2, 1), "february"),
    ]
    layout = compute_order(events, today=TODAY)
    assert [event.content for event in layout.order] == ["january", "february", "march"]
    assert [event.content for event in events] == ["march", "january", "february"]


def test_any_block_permutation_sorts_non_decreasing():
    events = [
        _event(datetime(2025, 1, 5)),
        _event(datetime(2024, 12, 31)),
        _event(SENTINEL_DATE),
        _event(datetime(2025, 1, 5, 8, 0)),
    ]
    for permutation in itertools.permutations(events):
        dates = [event.date for event in compute_order(list(permutation), today=TODAY).order]
        assert dates == sorted(dates)


def test_linear_ties_keep_parse_order():
    events = [
        _event(datetime(2025, 1, 5), "b", lane="Backend"),
        _event(datetime(2025, 1, 5), "f", lane="Frontend"),
    ]
    layout = compute_order(events, use_lanes=False, today=TODAY)
    assert [event.content for event in layout.order] == ["b", "f"]
    assert layout.lane_mode is False


def test_lane_mode_breaks_ties_by_lane_order():
    events = [
        _event(datetime(2025, 1, 1), "f1", lane="Frontend"),
        _event(datetime(2025, 1, 5), "b", lane="Backend"),
        _event(datetime(2025, 1, 5), "f2", lane="Frontend"),
    ]
    layout = compute_order(events, use_lanes=True, today=TODAY)
    assert layout.lane_mode is True
    assert layout.lanes == ["Frontend", "Backend"]
    assert layout.lane_index_of == {"Frontend": 0, "Backend": 1}
    assert [event.content for event in layout.order] == ["f1", "f2", "b"]


def test_single_lane_never_uses_lane_mode():
    events = [_event(datetime(2025, 1, 1)), _event(datetime(2025, 1, 2))]
    layout = compute_order(events, use_lanes=True, today=TODAY)
    assert layout.lane_mode is False
    assert layout.lanes == ["Default"]


def test_lane_mode_requires_caller_opt_in():
    events = [_event(datetime(2025, 1, 1), lane="A"), _event(datetime(2025, 1, 2), lane="B")]
    assert compute_order(events, use_lanes=False, today=TODAY).lane_mode is False
    assert compute_order(events, use_lanes=True, today=TODAY).lane_mode is True
    assert suggest_lane_mode(events) is True
    assert suggest_lane_mode(events[:1]) is False


def test_today_marker_between_past_and_future():
    events = [
        _event(datetime.combine(TODAY - timedelta(days=1), datetime.min.time())),
        _event(datetime.combine(TODAY + timedelta(days=1), datetime.min.time())),
    ]
    assert compute_order(events, today=TODAY).today_insert_index == 1


def test_today_marker_for_all_past_and_all_future():
    past = [_event(datetime(2020, 1, 1)), _event(datetime(2021, 1, 1))]
    future = [_event(datetime(2030, 1, 1)), _event(datetime(2031, 1, 1))]
    assert compute_order(past, today=TODAY).today_insert_index == len(past)
    assert compute_order(future, today=TODAY).today_insert_index == 0


def test_today_marker_compares_at_day_precision():
    earlier_today = _event(datetime(2025, 6, 15, 0, 30))
    later_today = _event(datetime(2025, 6, 15, 23, 0))
    assert today_insert_index([earlier_today], datetime(2025, 6, 15, 12, 0)) == 0
    assert today_insert_index([later_today], TODAY) == 0


def test_today_marker_skips_sentinel_events():
    events = [_event(SENTINEL_DATE, "broken"), _event(datetime(2030, 1, 1), "future")]
    layout = compute_order(events, today=TODAY)
    assert layout.order[0].content == "broken"
    assert layout.today_insert_index == 1


def test_degenerate_inputs():
    empty = compute_order([], use_lanes=True, today=TODAY)
    assert empty.order == []
    assert empty.lanes == []
    assert empty.today_insert_index == 0
    assert compute_connectors(empty, []).duration_connectors == []

    broken = [_event(SENTINEL_DATE), _event(SENTINEL_DATE)]
    layout = compute_order(broken, today=TODAY)
    assert layout.today_insert_index == 2
    connectors = compute_connectors(layout, _geometry(0, 100))
    assert connectors.duration_connectors == []
    assert connectors.lane_connectors == []


def test_duration_connector_reaches_first_event_at_end_date():
    events = [
        _event(datetime(2025, 1, 1), "phase", end=datetime(2025, 1, 10)),
        _event(datetime(2025, 1, 5), "midway"),
        _event(datetime(2025, 1, 10), "done"),
    ]
    layout = compute_order(events, today=TODAY)
    connectors = compute_connectors(layout, _geometry(0, 100, 200))
    assert len(connectors.duration_connectors) == 1
    connector = connectors.duration_connectors[0]
    assert connector.index == 0
    assert connector.start_offset == 0
    assert connector.end_offset == 200
    assert connector.height == 200
    assert connector.bar_height == 198
    assert connector.end_marker_offset == 200
    assert connector.open_ended is False


def test_open_ended_duration_runs_to_bottom_of_last_item():
    events = [
        _event(datetime(2025, 1, 1), end=datetime(2025, 3, 1)),
        _event(datetime(2025, 1, 5)),
    ]
    layout = compute_order(events, today=TODAY)
    geometry = [ItemGeometry(top=0, height=50), ItemGeometry(top=100, height=60)]
    connector = compute_connectors(layout, geometry).duration_connectors[0]
    assert connector.end_offset == 160
    assert connector.height == 160
    assert connector.open_ended is True


def test_short_duration_connectors_are_suppressed():
    events = [
        _event(datetime(2025, 1, 1), end=datetime(2025, 1, 2)),
        _event(datetime(2025, 1, 2)),
    ]
    layout = compute_order(events, today=TODAY)
    assert compute_connectors(layout, _geometry(0, 15)).duration_connectors == []

    relaxed = ConnectorOptions(min_duration_height=0)
    assert len(compute_connectors(layout, _geometry(0, 15), relaxed).duration_connectors) == 1


def test_end_date_not_after_start_has_no_connector():
    events = [
        _event(datetime(2025, 1, 10), end=datetime(2025, 1, 1)),
        _event(datetime(2025, 1, 20)),
    ]
    layout = compute_order(events, today=TODAY)
    assert compute_connectors(layout, _geometry(0, 200)).duration_connectors == []


def test_lane_connectors_link_consecutive_events_of_a_lane():
    events = [
        _event(datetime(2025, 1, 1), "f1", lane="Frontend"),
        _event(datetime(2025, 1, 2), "b1", lane="Backend"),
        _event(datetime(2025, 1, 3), "f2", lane="Frontend"),
        _event(datetime(2025, 1, 4), "b2", lane="Backend"),
    ]
    layout = compute_order(events, use_lanes=True, today=TODAY)
    connectors = compute_connectors(layout, _geometry(0, 50, 120, 200))
    assert [(c.index, c.lane, c.height) for c in connectors.lane_connectors] == [
        (0, "Frontend", 91),
        (1, "Backend", 121),
    ]
    assert connectors.lane_last_indices == [2, 3]


def test_lane_connectors_only_in_lane_mode():
    events = [
        _event(datetime(2025, 1, 1), lane="A"),
        _event(datetime(2025, 1, 2), lane="B"),
        _event(datetime(2025, 1, 3), lane="A"),
    ]
    layout = compute_order(events, use_lanes=False, today=TODAY)
    connectors = compute_connectors(layout, _geometry(0, 100, 200))
    assert connectors.lane_connectors == []
    assert connectors.lane_last_indices == []


def test_non_positive_lane_connectors_are_dropped():
    events = [
        _event(datetime(2025, 1, 1), lane="A"),
        _event(datetime(2025, 1, 2), lane="A"),
        _event(datetime(2025, 1, 3), lane="B"),
    ]
    layout = compute_order(events, use_lanes=True, today=TODAY)
    connectors = compute_connectors(layout, _geometry(0, 20, 40))
    assert connectors.lane_connectors == []
    assert connectors.lane_last_indices == [1, 2]


def test_connector_pass_is_idempotent():
    events = [
        _event(datetime(2025, 1, 1), end=datetime(2025, 2, 1)),
        _event(datetime(2025, 2, 1)),
    ]
    layout = compute_order(events, today=TODAY)
    first = compute_connectors(layout, _geometry(0, 100))
    again = compute_connectors(layout, _geometry(0, 100))
    assert first == again

    remeasured = compute_connectors(layout, _geometry(0, 300))
    assert remeasured.duration_connectors[0].height == 300


def test_missing_measurements_do_not_raise():
    events = [
        _event(datetime(2025, 1, 1), end=datetime(2025, 2, 1)),
        _event(datetime(2025, 2, 1)),
        _event(datetime(2025, 3, 1)),
    ]
    layout = compute_order(events, today=TODAY)
    connectors = compute_connectors(layout, _geometry(0, 100))
    assert [c.index for c in connectors.duration_connectors] == [0]
    assert compute_connectors(layout, []).duration_connectors == []


def test_parsed_document_end_to_end():
    raw = (
        "title: Release\n"
        "date: 2025-03-01\nlane: QA\nTesting\n---\n"
        "date: 2025-01-01\nend_date: 2025-03-01\nlane: Dev\nBuild\n---\n"
        "date: Februar 2025\nlane: Dev\nReview\n---\n"
        "No date"
    )
    document = parse_document(raw)
    layout = compute_order(document.events, use_lanes=True, today=date(2025, 2, 15))
    assert [event.content.splitlines()[-1] for event in layout.order] == [
        "No date",
        "Build",
        "Review",
        "Testing",
    ]
    assert layout.lanes == ["Default", "Dev", "QA"]
    assert layout.lane_mode is True
    assert layout.today_insert_index == 3

    connectors = compute_connectors(layout, _geometry(0, 100, 200, 300))
    duration = connectors.duration_connectors
    assert [(c.index, c.end_offset) for c in duration] == [(1, 300)]
    assert [(c.index, c.height) for c in connectors.lane_connectors] == [(1, 71)]
    assert connectors.lane_last_indices == [0, 2, 3]
