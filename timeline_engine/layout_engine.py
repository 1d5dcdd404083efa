from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from .models import (
    ConnectorLayout,
    DurationConnector,
    Event,
    ItemGeometry,
    LaneConnector,
    LayoutResult,
)
from .settings import Settings, settings as default_settings

logger = logging.getLogger("timeline_engine.layout_engine")

DateLike = Union[date, datetime]


class ConnectorOptions(BaseModel):
    """Pixel constants for the geometry-dependent pass."""

    model_config = ConfigDict(frozen=True)

    min_duration_height: float = Field(default=20.0, ge=0.0)
    duration_bar_inset: float = Field(default=2.0, ge=0.0)
    lane_anchor_offset: float = Field(default=29.0, ge=0.0)

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "ConnectorOptions":
        source = source or default_settings
        return cls(
            min_duration_height=source.duration_min_height,
            duration_bar_inset=source.duration_bar_inset,
            lane_anchor_offset=source.lane_anchor_offset,
        )


DEFAULT_CONNECTOR_OPTIONS = ConnectorOptions()


def _as_day(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def distinct_lanes(events: Sequence[Event]) -> List[str]:
    return list(dict.fromkeys(event.lane for event in events))


def suggest_lane_mode(events: Sequence[Event]) -> bool:
    """Default lane preference for a document seen for the first time."""
    return len(distinct_lanes(events)) > 1


def today_insert_index(order: Sequence[Event], today: Optional[DateLike] = None) -> int:
    """Position in ``order`` before which the today marker belongs.

    Sentinel-dated events are skipped; both sides are compared at day precision.
    Returns ``len(order)`` when no valid event is on or after today.
    """
    reference = _as_day(today) if today is not None else datetime.now().date()
    for index, event in enumerate(order):
        if not event.is_valid:
            continue
        if event.date.date() >= reference:
            return index
    return len(order)


def compute_order(
    events: Sequence[Event],
    use_lanes: bool = False,
    today: Optional[DateLike] = None,
) -> LayoutResult:
    """Geometry-free layout pass: chronological order, lanes and today marker."""
    # sorted() is stable, so equal dates keep their parse order
    order = sorted(events, key=lambda event: event.date)
    lanes = distinct_lanes(order)
    lane_index_of: Dict[str, int] = {lane: index for index, lane in enumerate(lanes)}
    lane_mode = bool(use_lanes) and len(lanes) > 1

    if lane_mode:
        order = sorted(order, key=lambda event: (event.date, lane_index_of[event.lane]))

    result = LayoutResult(
        order=order,
        lanes=lanes,
        lane_index_of=lane_index_of,
        lane_mode=lane_mode,
        today_insert_index=today_insert_index(order, today),
    )
    logger.debug(
        "Computed layout order",
        extra={"events": len(order), "lanes": len(lanes), "lane_mode": lane_mode},
    )
    return result


def _duration_connectors(
    order: Sequence[Event],
    geometry: Sequence[ItemGeometry],
    options: ConnectorOptions,
) -> List[DurationConnector]:
    connectors: List[DurationConnector] = []
    rendered = min(len(order), len(geometry))
    if rendered == 0:
        return connectors
    bottom_edge = geometry[rendered - 1].bottom

    for index in range(rendered):
        event = order[index]
        if not event.has_duration:
            continue

        end_offset = bottom_edge
        open_ended = True
        for later in range(index + 1, rendered):
            if order[later].date >= event.end_date:
                end_offset = geometry[later].top
                open_ended = False
                break

        start_offset = geometry[index].top
        height = end_offset - start_offset
        if height <= options.min_duration_height:
            continue
        connectors.append(
            DurationConnector(
                index=index,
                start_offset=start_offset,
                end_offset=end_offset,
                height=height,
                bar_height=height - options.duration_bar_inset,
                end_marker_offset=height,
                open_ended=open_ended,
            )
        )
    return connectors


def _lane_connectors(
    order: Sequence[Event],
    geometry: Sequence[ItemGeometry],
    options: ConnectorOptions,
) -> tuple[List[LaneConnector], List[int]]:
    positions_by_lane: Dict[str, List[int]] = {}
    for index in range(min(len(order), len(geometry))):
        positions_by_lane.setdefault(order[index].lane, []).append(index)

    connectors: List[LaneConnector] = []
    last_indices: List[int] = []
    for lane, positions in positions_by_lane.items():
        last_indices.append(positions[-1])
        for current, following in zip(positions, positions[1:]):
            height = geometry[following].top - geometry[current].top - options.lane_anchor_offset
            if height > 0:
                connectors.append(LaneConnector(index=current, lane=lane, height=height))

    connectors.sort(key=lambda connector: connector.index)
    return connectors, sorted(last_indices)


def compute_connectors(
    layout: LayoutResult,
    geometry: Sequence[ItemGeometry],
    options: Optional[ConnectorOptions] = None,
) -> ConnectorLayout:
    """Geometry-dependent pass, run after the render collaborator measured each item.

    ``geometry`` is aligned with ``layout.order``. Items without measurements get no
    connectors. The call is idempotent: re-running it with new measurements simply
    yields a replacement :class:`ConnectorLayout`.
    """
    options = options or DEFAULT_CONNECTOR_OPTIONS
    if len(geometry) != len(layout.order):
        logger.debug(
            "Geometry does not cover the layout order",
            extra={"events": len(layout.order), "measured": len(geometry)},
        )

    duration = _duration_connectors(layout.order, geometry, options)
    if not layout.lane_mode:
        return ConnectorLayout(duration_connectors=duration)

    lane_connectors, last_indices = _lane_connectors(layout.order, geometry, options)
    return ConnectorLayout(
        duration_connectors=duration,
        lane_connectors=lane_connectors,
        lane_last_indices=last_indices,
    )


__all__ = [
    "ConnectorOptions",
    "DEFAULT_CONNECTOR_OPTIONS",
    "compute_connectors",
    "compute_order",
    "distinct_lanes",
    "suggest_lane_mode",
    "today_insert_index",
]
