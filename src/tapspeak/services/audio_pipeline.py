"""
Audio pipeline: synthesize a segment and play it, or export text as WAV.

Each user action runs the sequence

    IDLE -> ACQUIRING -> SYNTHESIZING -> DECODING -> PLAYING -> IDLE

with ERROR reachable from the acquiring, synthesizing and decoding steps.
Export follows the same path through DECODING and then encodes a WAV file
instead of playing.

Requests are neither serialized nor cancelled. Each request takes a
generation number; only the most recently issued request may change the
visible status (`playing_index`, `is_loading`, `is_exporting`, `error`), so a
slow earlier request can never overwrite the outcome of a later one.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from tapspeak.schemas.settings import TapSpeakSettings
from tapspeak.services.audio import (
    WAV_MEDIA_TYPE,
    DecodedAudio,
    concatenate,
    decode_audio,
    encode_wav,
    export_filename,
)
from tapspeak.services.limits import check_segment, check_text, uses_segment_validation
from tapspeak.services.text_segmenter import request_chunks
from tapspeak.services.tts import TTSProvider, get_provider
from tapspeak.services.tts.errors import AuthError, PlaybackError, TTSError, ValidationError

logger = logging.getLogger(__name__)

# One silent frame keeps the platform audio session alive during synthesis
PLACEHOLDER_SAMPLE_RATE = 22050


class PipelineState(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    SYNTHESIZING = "synthesizing"
    DECODING = "decoding"
    PLAYING = "playing"
    ERROR = "error"


class PlaybackContext:
    """Session-wide audio output, backed by sounddevice.

    Starts suspended and must be resumed before sound is produced. Each
    start() opens a short-lived output stream; on_ended fires on the event
    loop once the buffer has been fully played.
    """

    def __init__(self, device: Optional[Any] = None):
        self.state = "suspended"
        self._device = device
        self._streams: set[Any] = set()

    def resume(self) -> None:
        if self.state == "suspended":
            self.state = "running"
            logger.info("Audio output resumed")

    def start(
        self, audio: DecodedAudio, on_ended: Optional[Callable[[], None]] = None
    ) -> None:
        try:
            import sounddevice as sd
        except (ImportError, OSError) as exc:
            # OSError when the PortAudio library itself is missing
            raise PlaybackError(f"Audio output is unavailable: {exc}") from exc

        loop = asyncio.get_running_loop()
        data = audio.interleaved()
        position = 0

        def _callback(outdata, frames, time_info, status) -> None:
            nonlocal position
            chunk = data[position:position + frames]
            outdata[: len(chunk)] = chunk
            outdata[len(chunk):] = 0
            position += len(chunk)
            if len(chunk) < frames:
                raise sd.CallbackStop

        def _finished() -> None:
            # Runs on the PortAudio thread
            loop.call_soon_threadsafe(self._finish, stream, on_ended)

        try:
            stream = sd.OutputStream(
                samplerate=audio.sample_rate,
                channels=audio.channels,
                dtype="float32",
                device=self._device,
                callback=_callback,
                finished_callback=_finished,
            )
            stream.start()
        except (sd.PortAudioError, OSError, ValueError) as exc:
            logger.error(
                f"Failed to open audio output ({audio.channels}ch @ {audio.sample_rate} Hz): {exc}"
            )
            raise PlaybackError(f"Audio output failed: {exc}") from exc
        self._streams.add(stream)

    def _finish(self, stream: Any, on_ended: Optional[Callable[[], None]]) -> None:
        self._streams.discard(stream)
        stream.close()
        if on_ended is not None:
            on_ended()


def _start_output(
    context: PlaybackContext,
    audio: DecodedAudio,
    on_ended: Optional[Callable[[], None]] = None,
) -> None:
    """Start playback, reporting device failures as PlaybackError."""
    try:
        context.start(audio, on_ended)
    except OSError as exc:
        raise PlaybackError(f"Audio output failed: {exc}") from exc


@dataclass(frozen=True)
class ExportedFile:
    filename: str
    content: bytes
    media_type: str = WAV_MEDIA_TYPE


class AudioPipeline:
    """Orchestrates playback and export against the active provider."""

    def __init__(
        self,
        context_factory: Callable[[], PlaybackContext] = PlaybackContext,
        provider_lookup: Callable[[str], TTSProvider] = get_provider,
        decoder: Callable[[bytes], DecodedAudio] = decode_audio,
        on_state_change: Optional[Callable[[PipelineState], None]] = None,
    ):
        self._context_factory = context_factory
        self._context: Optional[PlaybackContext] = None
        self._get_provider = provider_lookup
        self._decode = decoder
        self._on_state_change = on_state_change
        self._generation = 0

        self.state = PipelineState.IDLE
        self.playing_index: Optional[int] = None
        self.is_loading = False
        self.is_exporting = False
        self.error: Optional[str] = None

    # ------------------------------------------------------------------
    # Playback context
    # ------------------------------------------------------------------

    def acquire(self) -> PlaybackContext:
        """Create the playback context on first use and resume it.

        Synchronous: it must complete inside the user-gesture handler, before
        the first await.
        """
        if self._context is None:
            self._context = self._context_factory()
            logger.info("Created playback context")
        if self._context.state == "suspended":
            self._context.resume()
        return self._context

    # ------------------------------------------------------------------
    # Visible status
    # ------------------------------------------------------------------

    def _begin(self, index: Optional[int] = None, exporting: bool = False) -> int:
        self._generation += 1
        self.error = None
        if exporting:
            self.is_exporting = True
        else:
            self.is_loading = True
            self.playing_index = index
        self._transition(self._generation, PipelineState.ACQUIRING)
        return self._generation

    def _is_latest(self, generation: int) -> bool:
        return generation == self._generation

    def _transition(self, generation: int, state: PipelineState) -> None:
        if not self._is_latest(generation):
            logger.debug(f"Request {generation} is stale; not entering {state.value}")
            return
        self.state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _settle(self, generation: int) -> None:
        if not self._is_latest(generation):
            return
        self.playing_index = None
        self.is_loading = False
        self.is_exporting = False
        self._transition(generation, PipelineState.IDLE)

    def _fail(self, generation: int, exc: Exception) -> None:
        message = exc.message if isinstance(exc, TTSError) else (str(exc) or "Failed to play audio")
        logger.error(f"TTS Error: {message}")
        if not self._is_latest(generation):
            return
        self.error = message
        self._transition(generation, PipelineState.ERROR)
        self._settle(generation)

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    async def _synthesize(
        self, text: str, settings: TapSpeakSettings, generation: int
    ) -> DecodedAudio:
        provider_id = settings.active_provider
        credential = settings.credential()
        if not credential.strip():
            raise AuthError(f"Please set an API key for {provider_id} in settings.")

        self._transition(generation, PipelineState.SYNTHESIZING)
        provider = self._get_provider(provider_id)
        encoded = await provider.speak(text, credential, settings.voice())

        self._transition(generation, PipelineState.DECODING)
        return await asyncio.to_thread(self._decode, encoded)

    async def play(
        self,
        text: str,
        settings: TapSpeakSettings,
        index: Optional[int] = None,
    ) -> "asyncio.Future[None]":
        """Speak one segment through the playback context.

        Returns a future that resolves when playback ends naturally. Blank
        segments resolve immediately without touching any state.
        """
        loop = asyncio.get_running_loop()
        ended: asyncio.Future[None] = loop.create_future()
        if not text.strip():
            ended.set_result(None)
            return ended

        generation = self._begin(index)

        def _on_ended() -> None:
            self._settle(generation)
            if not ended.done():
                ended.set_result(None)

        try:
            check_segment(text, settings.active_provider, settings.split_delimiter)
            context = self.acquire()
            _start_output(context, DecodedAudio.silent(1, PLACEHOLDER_SAMPLE_RATE))
            decoded = await self._synthesize(text, settings, generation)
            self._transition(generation, PipelineState.PLAYING)
            _start_output(context, decoded, _on_ended)
        except Exception as exc:
            self._fail(generation, exc)
            raise

        logger.info(
            f"Playing segment {index} ({decoded.duration_seconds:.2f}s) "
            f"via {settings.active_provider}"
        )
        return ended

    async def export(self, text: str, settings: TapSpeakSettings) -> ExportedFile:
        """Synthesize the whole text and return it as a WAV file.

        In newline/period modes each sentence or line is its own request and
        the decoded audio is joined in order; otherwise the text is one
        request.
        """
        if not text.strip():
            self.error = "Please enter some text to export."
            raise ValidationError(self.error)

        generation = self._begin(exporting=True)
        provider_id = settings.active_provider
        mode = settings.split_delimiter
        try:
            if uses_segment_validation(mode):
                parts = request_chunks(text, mode)
                for part in parts:
                    check_segment(part, provider_id, mode)
            else:
                check_text(text, provider_id)
                parts = [text]

            self.acquire()
            buffers = [await self._synthesize(part, settings, generation) for part in parts]
            content = encode_wav(concatenate(buffers))
        except Exception as exc:
            self._fail(generation, exc)
            raise

        self._settle(generation)
        exported = ExportedFile(filename=export_filename(), content=content)
        logger.info(f"Exported {len(parts)} request(s) to {exported.filename} ({len(content)} bytes)")
        return exported


__all__ = [
    "AudioPipeline",
    "ExportedFile",
    "PLACEHOLDER_SAMPLE_RATE",
    "PipelineState",
    "PlaybackContext",
]
