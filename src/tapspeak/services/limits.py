"""Character-limit validation for segments and whole text."""

import re
from dataclasses import dataclass, field
from typing import Sequence

from tapspeak.schemas.settings import DelimiterMode, ProviderId
from tapspeak.services.text_segmenter import Segment
from tapspeak.services.tts.errors import ValidationError

# Per-request character budget for each provider. Not user-configurable.
CHARACTER_LIMITS: dict[ProviderId, int] = {
    "openai": 4096,
    "elevenlabs": 5000,
    "vertex": 500,
}

_SENTENCE_SPLIT = re.compile(r"[.。]")

_SEGMENT_MODES: frozenset[str] = frozenset({"newline", "period"})


@dataclass(frozen=True)
class SentenceValidation:
    is_valid: bool
    invalid_sentence_count: int
    max_sentence_length: int


@dataclass(frozen=True)
class SegmentValidation:
    index: int
    text: str
    length: int
    is_valid: bool
    sentence_issue: bool = False

    @property
    def is_flagged(self) -> bool:
        """Blank segments are never flagged even though they are valid."""
        return bool(self.text.strip()) and not self.is_valid


@dataclass(frozen=True)
class TextValidation:
    provider: ProviderId
    mode: DelimiterMode
    character_limit: int
    current_length: int
    is_over_limit: bool
    characters_over: int
    invalid_segment_count: int
    has_sentence_issues: bool
    segments: list[SegmentValidation] = field(default_factory=list)


def is_within_limit(text: str, provider: ProviderId) -> bool:
    return len(text) <= CHARACTER_LIMITS[provider]


def validate_sentence_sub_limits(text: str) -> SentenceValidation:
    """Check each sentence of `text` against the vertex per-sentence cap."""
    limit = CHARACTER_LIMITS["vertex"]
    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(text)]
    lengths = [len(s) for s in sentences if s]
    invalid = sum(1 for n in lengths if n > limit)
    return SentenceValidation(
        is_valid=invalid == 0,
        invalid_sentence_count=invalid,
        max_sentence_length=max(lengths, default=0),
    )


def uses_segment_validation(mode: DelimiterMode) -> bool:
    """Segments map to request-sized units only for newline/period modes."""
    return mode in _SEGMENT_MODES


def validate_segments(
    segments: Sequence[Segment],
    provider: ProviderId,
    mode: DelimiterMode,
) -> list[SegmentValidation]:
    results = []
    segment_mode = uses_segment_validation(mode)
    for seg in segments:
        trimmed = seg.text.strip()
        is_valid = not trimmed or is_within_limit(trimmed, provider)
        sentence_issue = False
        if provider == "vertex" and segment_mode and is_valid and trimmed:
            if not validate_sentence_sub_limits(trimmed).is_valid:
                is_valid = False
                sentence_issue = True
        results.append(
            SegmentValidation(
                index=seg.index,
                text=seg.text,
                length=len(trimmed),
                is_valid=is_valid,
                sentence_issue=sentence_issue,
            )
        )
    return results


def validate_text(
    text: str,
    segments: Sequence[Segment],
    provider: ProviderId,
    mode: DelimiterMode,
) -> TextValidation:
    """Summarize the limit state of the editor text.

    Segment modes report the worst segment; `period_newline` measures the
    whole text because it is sent as one request.
    """
    limit = CHARACTER_LIMITS[provider]
    per_segment = validate_segments(segments, provider, mode)
    invalid_count = sum(1 for s in per_segment if s.is_flagged)

    if uses_segment_validation(mode):
        current_length = max((s.length for s in per_segment), default=0)
        over = invalid_count > 0
    else:
        current_length = len(text)
        over = not is_within_limit(text, provider)

    return TextValidation(
        provider=provider,
        mode=mode,
        character_limit=limit,
        current_length=current_length,
        is_over_limit=over,
        characters_over=current_length - limit if over else 0,
        invalid_segment_count=invalid_count,
        has_sentence_issues=any(s.sentence_issue for s in per_segment),
        segments=per_segment,
    )


def check_segment(text: str, provider: ProviderId, mode: DelimiterMode) -> None:
    """Pre-flight check for a single clicked segment."""
    if not uses_segment_validation(mode):
        return
    trimmed = text.strip()
    limit = CHARACTER_LIMITS[provider]
    if len(trimmed) > limit:
        raise ValidationError(
            f"This segment has {len(trimmed)} characters, over the {provider} "
            f"limit of {limit}. Remove {len(trimmed) - limit} characters."
        )
    if provider == "vertex":
        sentences = validate_sentence_sub_limits(trimmed)
        if not sentences.is_valid:
            raise ValidationError(
                f"{sentences.invalid_sentence_count} sentence(s) in this segment "
                f"exceed the vertex per-sentence limit of {limit} characters."
            )


def check_text(text: str, provider: ProviderId) -> None:
    """Pre-flight check for a whole-text request."""
    limit = CHARACTER_LIMITS[provider]
    if not is_within_limit(text, provider):
        raise ValidationError(
            f"Text exceeds {provider} character limit by {len(text) - limit} characters."
        )


__all__ = [
    "CHARACTER_LIMITS",
    "SegmentValidation",
    "SentenceValidation",
    "TextValidation",
    "check_segment",
    "check_text",
    "is_within_limit",
    "uses_segment_validation",
    "validate_segments",
    "validate_sentence_sub_limits",
    "validate_text",
]
