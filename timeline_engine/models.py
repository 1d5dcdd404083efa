from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

LARGE_TEXT_MAX_LENGTH = 5_000_000
SENTINEL_DATE = datetime(1970, 1, 1)


class Event(BaseModel):
    """A single dated entry parsed from one block of the document."""

    model_config = ConfigDict(frozen=True)

    date: datetime = Field(..., description="Normalised start instant; the epoch sentinel marks a failed parse")
    end_date: Optional[datetime] = Field(default=None, description="Optional end instant for duration events")
    display_label: Optional[str] = Field(
        default=None,
        description="Overrides the default date formatting (quarter and month-name inputs)",
    )
    has_explicit_time: bool = Field(default=False, description="The date token carried a time of day")
    category: Optional[str] = Field(default=None, description="Value of the class: line when recognised")
    lane: str = Field(default="Default", description="Swimlane the event belongs to")
    content: str = Field(default="", description="Markdown body of the block without metadata lines")
    source_start: int = Field(..., ge=0, description="Start offset of the block in the original document")
    source_end: int = Field(..., ge=0, description="End offset (exclusive) of the block in the original document")

    @model_validator(mode="after")
    def _check_source_range(self) -> "Event":
        if self.source_start >= self.source_end:
            raise ValueError("source_start must be smaller than source_end")
        return self

    @property
    def is_valid(self) -> bool:
        return self.date != SENTINEL_DATE

    @property
    def has_duration(self) -> bool:
        return self.end_date is not None and self.end_date > self.date


class Document(BaseModel):
    title: Optional[str] = None
    body_offset: int = Field(default=0, ge=0, description="Index of the body inside the raw text")
    events: List[Event] = Field(default_factory=list)


class LayoutResult(BaseModel):
    """Output of the geometry-free layout pass."""

    order: List[Event] = Field(default_factory=list, description="Events sorted chronologically")
    lanes: List[str] = Field(default_factory=list, description="Distinct lanes in first-seen order")
    lane_index_of: Dict[str, int] = Field(default_factory=dict)
    lane_mode: bool = Field(default=False, description="Events are rendered in parallel lanes")
    today_insert_index: int = Field(default=0, ge=0, description="Position of the today marker within order")


class ItemGeometry(BaseModel):
    """Measured placement of one rendered event, supplied by the render pass."""

    top: float = Field(..., description="Vertical offset of the item inside the timeline container")
    height: float = Field(default=0.0, ge=0.0, description="Rendered height of the item")

    @property
    def bottom(self) -> float:
        return self.top + self.height


class DurationConnector(BaseModel):
    index: int = Field(..., ge=0, description="Position of the starting event within the layout order")
    start_offset: float
    end_offset: float
    height: float
    bar_height: float
    end_marker_offset: float
    open_ended: bool = Field(
        default=False,
        description="No later event reaches the end date; the connector runs to the bottom of the last item",
    )


class LaneConnector(BaseModel):
    index: int = Field(..., ge=0)
    lane: str
    height: float


class ConnectorLayout(BaseModel):
    duration_connectors: List[DurationConnector] = Field(default_factory=list)
    lane_connectors: List[LaneConnector] = Field(default_factory=list)
    lane_last_indices: List[int] = Field(default_factory=list)


class EventStatistics(BaseModel):
    total: int = 0
    upcoming: int = 0
    past: int = 0
    duration: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    lanes: List[str] = Field(default_factory=list)
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class EventLabels(BaseModel):
    """Display strings for one event, aligned with ``ParseResponse.events``."""

    date_label: str
    weekday: str = ""
    duration: Optional[str] = Field(default=None, description="Set only for events with an end date")


class SearchResult(BaseModel):
    """A filtered event plus the content ranges where the query matched."""

    index: int = Field(..., ge=0, description="Position of the event in the searched sequence")
    event: Event
    matched_fields: List[str] = Field(default_factory=list)
    highlights: List[List[int]] = Field(
        default_factory=list,
        description="[start, end) character ranges of every match inside the event content",
    )


# --- HTTP request / response models ---------------------------------------


class ParseRequest(BaseModel):
    text: str = Field(
        ...,
        max_length=LARGE_TEXT_MAX_LENGTH,
        description="Raw timeline document",
    )

    @field_validator("text")
    @classmethod
    def ensure_non_empty(cls, value: str) -> str:
        # offsets address the raw text, so it is checked but never stripped
        if not value.strip():
            raise ValueError("text must not be empty")
        return value


class LayoutRequest(ParseRequest):
    use_lanes: bool = Field(default=False, description="Caller prefers parallel lanes")
    today: Optional[date] = Field(default=None, description="Overrides the current date for the today marker")


class ConnectorRequest(LayoutRequest):
    geometry: List[ItemGeometry] = Field(
        ...,
        description="Measured geometry per rendered event, in layout order",
    )


class SearchRequest(ParseRequest):
    query: str = Field(default="", max_length=500)
    categories: Optional[List[str]] = Field(
        default=None,
        description="Categories to keep; 'none' keeps uncategorised events. Omit to keep all.",
    )
    lanes: Optional[List[str]] = Field(default=None, description="Lanes to keep. Omit to keep all.")
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @field_validator("categories")
    @classmethod
    def _normalise_categories(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        return [category.strip().lower() for category in value if category.strip()]


class StatsRequest(ParseRequest):
    today: Optional[date] = None


class ParseResponse(BaseModel):
    title: Optional[str]
    body_offset: int
    events: List[Event]
    labels: List[EventLabels] = Field(default_factory=list)
    total_events: int
    generated_at: datetime


class LayoutResponse(BaseModel):
    title: Optional[str]
    layout: LayoutResult
    generated_at: datetime


class ConnectorResponse(LayoutResponse):
    connectors: ConnectorLayout


class SearchResponse(BaseModel):
    query: str
    total_events: int
    total_matches: int
    results: List[SearchResult]
    generated_at: datetime
