"""Audio helpers: decode provider output, concatenate buffers, encode WAV."""

import io
import logging
import struct
import time
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from tapspeak.services.tts.errors import DecodeError

logger = logging.getLogger(__name__)

WAV_MEDIA_TYPE = "audio/wav"
WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16

# RIFF header, fmt chunk and data chunk header, little-endian
_WAV_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass
class DecodedAudio:
    """Float PCM shaped (channels, frames), values in [-1.0, 1.0]."""

    samples: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        samples = np.asarray(self.samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples.reshape(1, -1)
        if samples.ndim != 2:
            raise ValueError(f"Expected (channels, frames) samples, got shape {samples.shape}")
        self.samples = samples

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frames(self) -> int:
        return self.samples.shape[1]

    @property
    def duration_seconds(self) -> float:
        return self.frames / self.sample_rate if self.sample_rate else 0.0

    def interleaved(self) -> np.ndarray:
        """Return samples shaped (frames, channels) for output devices."""
        return np.ascontiguousarray(self.samples.T)

    @classmethod
    def silent(cls, frames: int, sample_rate: int, channels: int = 1) -> "DecodedAudio":
        return cls(np.zeros((channels, frames), dtype=np.float32), sample_rate)


def decode_audio(data: bytes) -> DecodedAudio:
    """Decode encoded audio bytes (MP3, WAV, ...) into float samples.

    WAV is parsed natively by pydub; compressed formats need ffmpeg.
    """
    if not data:
        raise DecodeError("Received empty audio payload")

    audio_format = "wav" if data[:4] == b"RIFF" else None
    try:
        segment = AudioSegment.from_file(io.BytesIO(data), format=audio_format)
    except (CouldntDecodeError, IndexError, OSError, ValueError, struct.error) as exc:
        logger.error(f"Failed to decode {len(data)} bytes of audio: {exc}")
        raise DecodeError(f"Unable to decode audio data: {exc}") from exc

    if segment.frame_count() == 0:
        raise DecodeError("Decoded audio contains no samples")

    raw = np.array(segment.get_array_of_samples(), dtype=np.float32)
    scale = float(1 << (8 * segment.sample_width - 1))
    samples = (raw / scale).reshape(-1, segment.channels).T
    logger.debug(
        f"Decoded {len(data)} bytes into {samples.shape[1]} frames "
        f"x {segment.channels} channels @ {segment.frame_rate} Hz"
    )
    return DecodedAudio(samples, segment.frame_rate)


def encode_wav(audio: DecodedAudio) -> bytes:
    """Serialize decoded audio as a 16-bit PCM RIFF/WAVE file."""
    channels, frames = audio.channels, audio.frames
    if channels == 0 or frames == 0:
        raise ValueError("Cannot encode an empty audio buffer")

    # NaN encodes as silence; infinities clip to full scale
    clipped = np.clip(np.nan_to_num(audio.samples.astype(np.float64), nan=0.0), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 0x8000, clipped * 0x7FFF)
    # astype truncates toward zero; transpose interleaves frame by frame
    pcm = scaled.astype("<i2").T.reshape(-1).tobytes()

    header = _WAV_HEADER.pack(
        b"RIFF",
        36 + len(pcm),
        b"WAVE",
        b"fmt ",
        16,                               # fmt chunk length
        1,                                # PCM
        channels,
        audio.sample_rate,
        audio.sample_rate * channels * 2,  # byte rate
        channels * 2,                     # block align
        BITS_PER_SAMPLE,
        b"data",
        len(pcm),
    )
    return header + pcm


def concatenate(buffers: Sequence[DecodedAudio]) -> DecodedAudio:
    """Join buffers end to end, in input order."""
    if not buffers:
        raise ValueError("No buffers to concatenate")

    first = buffers[0]
    for buffer in buffers[1:]:
        if buffer.channels != first.channels or buffer.sample_rate != first.sample_rate:
            raise ValueError(
                "Cannot concatenate buffers with different layouts: "
                f"{first.channels}ch@{first.sample_rate}Hz vs "
                f"{buffer.channels}ch@{buffer.sample_rate}Hz"
            )

    total = sum(buffer.frames for buffer in buffers)
    result = np.zeros((first.channels, total), dtype=np.float32)
    offset = 0
    for buffer in buffers:
        result[:, offset:offset + buffer.frames] = buffer.samples
        offset += buffer.frames
    return DecodedAudio(result, first.sample_rate)


def export_filename(now: float | None = None) -> str:
    """Timestamped download name, e.g. tapspeak-1700000000000.wav."""
    millis = int((time.time() if now is None else now) * 1000)
    return f"tapspeak-{millis}.wav"


__all__ = [
    "BITS_PER_SAMPLE",
    "DecodedAudio",
    "WAV_HEADER_SIZE",
    "WAV_MEDIA_TYPE",
    "concatenate",
    "decode_audio",
    "encode_wav",
    "export_filename",
]
