from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Tuple

SEPARATOR = "---"
LINE_BREAK_PATTERN = re.compile(r"\r\n|\r|\n")


@dataclass(frozen=True)
class Block:
    """Raw text of one event block and its absolute position in the document."""

    text: str
    start: int
    end: int


def iter_lines(text: str) -> Iterator[Tuple[int, int, int]]:
    """Yield ``(start, end, next_start)`` for every line; ``end`` excludes the line break."""
    position = 0
    for match in LINE_BREAK_PATTERN.finditer(text):
        yield position, match.start(), match.end()
        position = match.end()
    yield position, len(text), len(text)


def _strip_one_line_break(text: str, start: int, end: int) -> int:
    if text.endswith("\r\n", start, end):
        return end - 2
    if end > start and text[end - 1] in "\r\n":
        return end - 1
    return end


def split_blocks(body: str, body_offset: int = 0) -> List[Block]:
    """Split ``body`` at lines consisting solely of ``---``.

    Whitespace-only blocks are dropped. Offsets are shifted by ``body_offset`` so they
    address the original document rather than the body.
    """
    blocks: List[Block] = []
    segment_start = 0

    def emit(start: int, end: int) -> None:
        text = body[start:end]
        if text.strip():
            blocks.append(Block(text=text, start=body_offset + start, end=body_offset + end))

    for line_start, line_end, next_start in iter_lines(body):
        if body[line_start:line_end] != SEPARATOR:
            continue
        emit(segment_start, _strip_one_line_break(body, segment_start, line_start))
        segment_start = next_start

    emit(segment_start, len(body))
    return blocks
