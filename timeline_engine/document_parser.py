from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .event_extractor import DEFAULT_EXTRACTOR_CONFIG, ExtractorConfig, extract_event
from .models import Document
from .tokenizer import iter_lines, split_blocks

logger = logging.getLogger("timeline_engine.document_parser")

TITLE_LINE_PATTERN = re.compile(r"^\s*title:\s*(?P<title>.+?)\s*$", re.IGNORECASE)
HEADING_LINE_PATTERN = re.compile(r"^\s*#{1,6}\s+(?P<title>.+?)\s*$")


@dataclass(frozen=True)
class TitleExtraction:
    title: Optional[str]
    body: str
    body_offset: int


def _match_title(line: str) -> Optional[str]:
    for pattern in (TITLE_LINE_PATTERN, HEADING_LINE_PATTERN):
        match = pattern.match(line)
        if match and match.group("title").strip():
            return match.group("title").strip()
    return None


def extract_title(raw: str) -> TitleExtraction:
    """Take the title from the first non-blank line when it is ``title: ...`` or a heading.

    The body starts right after the consumed line; ``body_offset`` is its index in
    ``raw`` so event offsets can be reported against the untouched text.
    """
    if not raw:
        return TitleExtraction(title=None, body="", body_offset=0)

    for line_start, line_end, next_start in iter_lines(raw):
        line = raw[line_start:line_end]
        if not line.strip():
            continue
        title = _match_title(line)
        if title is None:
            break
        return TitleExtraction(title=title, body=raw[next_start:], body_offset=next_start)

    return TitleExtraction(title=None, body=raw, body_offset=0)


def parse_document(raw: str, config: Optional[ExtractorConfig] = None) -> Document:
    """Parse a raw timeline document into its title and events.

    A fresh :class:`Document` is built on every call; nothing is cached between calls.
    """
    extraction = extract_title(raw or "")
    blocks = split_blocks(extraction.body, extraction.body_offset)
    events = [extract_event(block, config or DEFAULT_EXTRACTOR_CONFIG) for block in blocks]
    logger.debug(
        "Parsed document",
        extra={
            "title": extraction.title,
            "blocks": len(blocks),
            "invalid_events": sum(1 for event in events if not event.is_valid),
        },
    )
    return Document(title=extraction.title, body_offset=extraction.body_offset, events=events)


__all__ = ["TitleExtraction", "extract_title", "parse_document"]
