"""TapSpeak CLI - terminal client that speaks text segment by segment.

Settings are read from and written to the same store the HTTP service uses,
so keys and voices chosen here carry over to the server and back.
"""

import argparse
import asyncio
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.style import Style
from rich.table import Table

from tapspeak.config import settings_directory
from tapspeak.schemas.settings import (
    DELIMITER_MODES,
    PROVIDER_IDS,
    TapSpeakSettings,
    TapSpeakSettingsUpdate,
)
from tapspeak.services.audio_pipeline import AudioPipeline, PipelineState
from tapspeak.services.limits import validate_text
from tapspeak.services.settings_store import FileKeyValueStore, SettingsService
from tapspeak.services.text_segmenter import segment
from tapspeak.services.tts import TTSError, TTSProvider, filter_voices, get_provider

ERROR_STYLE = Style(color="red", bold=True)
INFO_STYLE = Style(color="cyan")
WARN_STYLE = Style(color="yellow")


class TapSpeakCLI:
    """Local client: settings, segmentation, playback and export."""

    def __init__(self, service: SettingsService, console: Optional[Console] = None):
        self.service = service
        self.console = console or Console()
        self.pipeline = AudioPipeline(on_state_change=self._on_state_change)

    @property
    def settings(self) -> TapSpeakSettings:
        return self.service.get_settings()

    def _on_state_change(self, state: PipelineState) -> None:
        self.console.print(f"[dim]{state.value}[/dim]")

    def _error(self, message: str) -> None:
        self.console.print(f"Error: {message}", style=ERROR_STYLE)

    # ------------------------------------------------------------------
    # Text commands
    # ------------------------------------------------------------------

    def show_segments(self, text: str) -> None:
        table = Table(title=f"Segments ({self.settings.split_delimiter})")
        table.add_column("#", justify="right")
        table.add_column("Text")
        for item in segment(text, self.settings.split_delimiter):
            if not item.is_blank:
                table.add_row(str(item.index), item.text)
        self.console.print(table)

    def show_validation(self, text: str) -> int:
        settings = self.settings
        mode = settings.split_delimiter
        result = validate_text(text, segment(text, mode), settings.active_provider, mode)

        self.console.print(
            f"{result.provider}: {result.current_length}/{result.character_limit} characters",
            style=INFO_STYLE,
        )
        if result.is_over_limit:
            self.console.print(
                f"Text exceeds {result.provider} character limit by "
                f"{result.characters_over} characters.",
                style=WARN_STYLE,
            )
        for item in result.segments:
            if item.is_flagged:
                reason = "sentence too long" if item.sentence_issue else "over limit"
                self.console.print(f"  [{item.index}] {reason} ({item.length} chars)", style=WARN_STYLE)
        if result.invalid_segment_count:
            self.console.print(f"{result.invalid_segment_count} segment(s) over the limit", style=WARN_STYLE)
        return 1 if result.is_over_limit or result.invalid_segment_count else 0

    # ------------------------------------------------------------------
    # Provider commands
    # ------------------------------------------------------------------

    async def show_voices(
        self, provider: Optional[str] = None, query: Optional[str] = None
    ) -> int:
        provider_id = provider or self.settings.active_provider
        try:
            voices = await get_provider(provider_id).list_voices(self.settings.credential(provider_id))
        except TTSError as e:
            self._error(e.message)
            return 1

        selected = self.settings.voice(provider_id)
        table = Table(title=f"{provider_id} voices")
        table.add_column("")
        table.add_column("ID")
        table.add_column("Name")
        table.add_column("Language")
        for voice in filter_voices(voices, query):
            marker = "*" if voice.id == selected else ""
            table.add_row(marker, voice.id, voice.name, voice.language_code or "")
        self.console.print(table)
        return 0

    async def play(self, text: str, index: int) -> int:
        segments = segment(text, self.settings.split_delimiter)
        if index < 0 or index >= len(segments):
            self._error(f"No segment {index} (0-{len(segments) - 1})")
            return 1
        target = segments[index]
        if target.is_blank:
            self.console.print("[dim]Nothing to say[/dim]")
            return 0

        self.console.print(f"Speaking: {target.text.strip()}", style=INFO_STYLE)
        try:
            ended = await self.pipeline.play(target.text, self.settings, index=index)
            await ended
        except TTSError as e:
            self._error(e.message)
            return 1
        return 0

    async def export(self, text: str, output: Optional[Path]) -> int:
        try:
            exported = await self.pipeline.export(text, self.settings)
        except TTSError as e:
            self._error(e.message)
            return 1
        path = output or Path.cwd() / exported.filename
        path.write_bytes(exported.content)
        self.console.print(f"Saved {path} ({len(exported.content)} bytes)", style=INFO_STYLE)
        return 0


def _read_text(args: argparse.Namespace) -> str:
    if args.text is not None:
        return args.text
    if args.file is not None:
        return Path(args.file).read_text(encoding="utf-8")
    return sys.stdin.read()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tapspeak",
        description="TapSpeak - hear text spoken one segment at a time",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tapspeak segments --file notes.txt     Show clickable segments
  echo "Hi. Bye." | tapspeak play 0      Speak the first segment
  tapspeak export --file notes.txt -o out.wav
  tapspeak set-key openai sk-...         Store a credential

Environment Variables:
  SETTINGS_DIR    Directory holding tapspeak_settings.json (default: data)
""",
    )
    text_args = argparse.ArgumentParser(add_help=False)
    source = text_args.add_mutually_exclusive_group()
    source.add_argument("--text", "-t", default=None, help="Text to process")
    source.add_argument("--file", "-f", default=None, help="Read text from a file")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("segments", parents=[text_args], help="Show the segments of the text")
    sub.add_parser("validate", parents=[text_args], help="Check the text against provider limits")

    voices = sub.add_parser("voices", help="List voices for a provider")
    voices.add_argument("--provider", "-p", choices=PROVIDER_IDS, default=None)
    voices.add_argument("--filter", "-q", default=None, help="Only voices whose name or id contains this")

    play = sub.add_parser("play", parents=[text_args], help="Speak one segment")
    play.add_argument("index", type=int, help="Segment index as shown by 'segments'")

    export = sub.add_parser("export", parents=[text_args], help="Export the text as WAV")
    export.add_argument("--output", "-o", type=Path, default=None, help="Output path")

    set_key = sub.add_parser("set-key", help="Store a provider credential")
    set_key.add_argument("provider", choices=PROVIDER_IDS)
    set_key.add_argument("key", help="API key, or a path to a service-account JSON file for vertex")

    use = sub.add_parser("use", help="Select the active provider")
    use.add_argument("provider", choices=PROVIDER_IDS)

    voice = sub.add_parser("voice", help="Select a voice for a provider")
    voice.add_argument("provider", choices=PROVIDER_IDS)
    voice.add_argument("voice_id")

    mode = sub.add_parser("mode", help="Select how text is split")
    mode.add_argument("mode", choices=DELIMITER_MODES)

    sub.add_parser("serve", help="Run the HTTP service")
    return parser


async def _run(cli: TapSpeakCLI, args: argparse.Namespace) -> int:
    try:
        if args.command == "voices":
            return await cli.show_voices(args.provider, args.filter)
        if args.command == "play":
            return await cli.play(_read_text(args), args.index)
        if args.command == "export":
            return await cli.export(_read_text(args), args.output)
    finally:
        await TTSProvider.close_http_client()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        from tapspeak.main import main as serve

        serve()
        return 0

    def signal_handler(sig, frame):
        print("\nExiting...")
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)

    try:
        settings_dir = settings_directory()
    except ValueError as e:
        Console().print(f"Error: {e}", style=ERROR_STYLE)
        return 1
    cli = TapSpeakCLI(SettingsService(FileKeyValueStore(settings_dir)))

    if args.command == "segments":
        cli.show_segments(_read_text(args))
        return 0
    if args.command == "validate":
        return cli.show_validation(_read_text(args))
    if args.command == "set-key":
        key = args.key
        if args.provider == "vertex" and os.path.isfile(key):
            key = Path(key).read_text(encoding="utf-8")
        cli.service.update_api_key(args.provider, key)
        cli.console.print(f"Saved {args.provider} credential", style=INFO_STYLE)
        return 0
    if args.command == "use":
        cli.service.update_settings(TapSpeakSettingsUpdate(active_provider=args.provider))
        cli.console.print(f"Active provider: {args.provider}", style=INFO_STYLE)
        return 0
    if args.command == "voice":
        cli.service.update_voice(args.provider, args.voice_id)
        cli.console.print(f"{args.provider} voice: {args.voice_id}", style=INFO_STYLE)
        return 0
    if args.command == "mode":
        cli.service.update_split_delimiter(args.mode)
        cli.console.print(f"Split mode: {args.mode}", style=INFO_STYLE)
        return 0

    try:
        return asyncio.run(_run(cli, args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
