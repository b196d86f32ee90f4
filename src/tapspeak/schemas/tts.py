"""Request/response schemas for the TTS, segmentation and validation routes."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .settings import DelimiterMode, ProviderId


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Voice(_CamelModel):
    """A voice offered by a provider, normalized across vendors."""

    id: str
    name: str
    language_code: Optional[str] = None
    gender: Optional[str] = None


class VoicesResponse(BaseModel):
    voices: list[Voice]


class SegmentsRequest(BaseModel):
    text: str
    mode: Optional[DelimiterMode] = Field(
        default=None,
        description="Delimiter mode; defaults to the stored split setting.",
    )


class SegmentItem(BaseModel):
    index: int
    text: str


class SegmentsResponse(BaseModel):
    segments: list[SegmentItem]


class ValidateRequest(BaseModel):
    text: str
    provider: Optional[ProviderId] = None
    mode: Optional[DelimiterMode] = None


class SegmentValidationItem(_CamelModel):
    index: int
    text: str
    length: int
    is_valid: bool
    sentence_issue: bool


class ValidateResponse(_CamelModel):
    provider: ProviderId
    mode: DelimiterMode
    character_limit: int
    current_length: int
    is_over_limit: bool
    characters_over: int
    invalid_segment_count: int
    has_sentence_issues: bool
    segments: list[SegmentValidationItem]


class SpeakRequest(_CamelModel):
    text: str = Field(..., min_length=1)
    provider: Optional[ProviderId] = None
    voice_id: Optional[str] = None


class ExportRequest(BaseModel):
    text: str


class VertexSynthesizeRequest(_CamelModel):
    """Body forwarded to the trusted intermediary for synthesis.

    `credentials` is the service-account document, either as an object or a
    JSON-encoded string.
    """

    text: Optional[str] = None
    voice_id: Optional[str] = None
    credentials: Optional[Any] = None


class VertexVoicesRequest(BaseModel):
    credentials: Optional[Any] = None


class VertexVoice(_CamelModel):
    name: str
    ssml_gender: str
    language_codes: list[str]


class VertexVoicesResponse(BaseModel):
    voices: list[VertexVoice]


__all__ = [
    "ExportRequest",
    "SegmentItem",
    "SegmentValidationItem",
    "SegmentsRequest",
    "SegmentsResponse",
    "SpeakRequest",
    "ValidateRequest",
    "ValidateResponse",
    "VertexSynthesizeRequest",
    "VertexVoice",
    "VertexVoicesRequest",
    "VertexVoicesResponse",
    "Voice",
    "VoicesResponse",
]
