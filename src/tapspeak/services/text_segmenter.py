"""Split editor text into clickable segments.

Delimiter runs are kept as their own segments so that joining the output
reproduces the input exactly. Empty strings are never emitted.
"""

import re
from dataclasses import dataclass

from tapspeak.schemas.settings import DEFAULT_DELIMITER, DelimiterMode

# Each pattern has a single capture group so re.split keeps the delimiters.
_SPLIT_PATTERNS: dict[DelimiterMode, re.Pattern[str]] = {
    "newline": re.compile(r"(\n+)"),
    "period": re.compile(r"([。.])"),
    "period_newline": re.compile(r"([。. \n]+)"),
}


@dataclass(frozen=True)
class Segment:
    index: int
    text: str

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


def split_text(text: str, mode: DelimiterMode = DEFAULT_DELIMITER) -> list[str]:
    """Split text according to the delimiter mode, keeping delimiters."""
    pattern = _SPLIT_PATTERNS.get(mode) or _SPLIT_PATTERNS[DEFAULT_DELIMITER]
    return [part for part in pattern.split(text) if part]


def segment(text: str, mode: DelimiterMode = DEFAULT_DELIMITER) -> list[Segment]:
    """Split text into indexed segments in document order."""
    return [Segment(index=i, text=part) for i, part in enumerate(split_text(text, mode))]


def is_delimiter(part: str, mode: DelimiterMode = DEFAULT_DELIMITER) -> bool:
    pattern = _SPLIT_PATTERNS.get(mode) or _SPLIT_PATTERNS[DEFAULT_DELIMITER]
    return pattern.fullmatch(part) is not None


def request_chunks(text: str, mode: DelimiterMode = DEFAULT_DELIMITER) -> list[str]:
    """Group each content segment with the delimiter run that follows it.

    "Hello. World." in period mode gives ["Hello.", " World."]. Blank chunks
    are dropped.
    """
    chunks: list[str] = []
    for part in split_text(text, mode):
        if chunks and is_delimiter(part, mode):
            chunks[-1] += part
        else:
            chunks.append(part)
    return [chunk for chunk in chunks if chunk.strip()]


__all__ = ["Segment", "is_delimiter", "request_chunks", "segment", "split_text"]
