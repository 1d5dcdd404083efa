"""Parse loosely structured timeline documents and lay out their events."""

from .date_resolver import DateFailure, ResolvedDate, is_sentinel, resolve_date
from .document_parser import extract_title, parse_document
from .event_extractor import ExtractorConfig, extract_event
from .layout_engine import (
    ConnectorOptions,
    compute_connectors,
    compute_order,
    suggest_lane_mode,
    today_insert_index,
)
from .models import (
    SENTINEL_DATE,
    ConnectorLayout,
    Document,
    Event,
    ItemGeometry,
    LayoutResult,
)
from .tokenizer import Block, split_blocks

__all__ = [
    "SENTINEL_DATE",
    "Block",
    "ConnectorLayout",
    "ConnectorOptions",
    "DateFailure",
    "Document",
    "Event",
    "ExtractorConfig",
    "ItemGeometry",
    "LayoutResult",
    "ResolvedDate",
    "compute_connectors",
    "compute_order",
    "extract_event",
    "extract_title",
    "is_sentinel",
    "parse_document",
    "resolve_date",
    "split_blocks",
    "suggest_lane_mode",
    "today_insert_index",
]
