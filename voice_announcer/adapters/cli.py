"""
CLI Adapter - Command-line interface.

Thin wrapper over the announcement board and the speech engine.
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

DEFAULT_TIMEOUT = 120.0


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="voice-announcer",
        description="Spoken announcements for a gym display",
    )
    parser.add_argument("--data-dir", help="Directory for persisted settings")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log-format",
        default="text",
        choices=["text", "json"],
        help="Structured log format (default: text)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Run the announcement board")
    run_parser.add_argument(
        "--no-timers",
        action="store_true",
        help="Only closing and hourly announcements; leave recurring timers stopped",
    )
    run_parser.add_argument(
        "--duration",
        type=float,
        help="Stop after this many seconds (default: run until interrupted)",
    )

    # speak command
    speak_parser = subparsers.add_parser("speak", help="Speak text now")
    speak_parser.add_argument("text", help="Text to speak")
    speak_parser.add_argument("-e", "--engine", help="Engine for this call (murf, elevenlabs, local)")
    speak_parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT)

    # render command
    render_parser = subparsers.add_parser("render", help="Synthesize text to a WAV file")
    render_parser.add_argument("text", help="Text to synthesize")
    render_parser.add_argument("-o", "--output", required=True, help="Output WAV path")
    render_parser.add_argument(
        "-e", "--engine",
        default="murf",
        choices=["murf", "elevenlabs"],
        help="Remote engine (default: murf)",
    )
    render_parser.add_argument("-v", "--voice", help="Voice ID")

    # timers command
    timers_parser = subparsers.add_parser("timers", help="List or edit recurring timers")
    timers_parser.add_argument("--id", dest="timer_id", help="Timer to edit")
    timers_parser.add_argument("--interval", type=float, help="New interval in minutes")
    timers_parser.add_argument("--name", help="New display name")
    toggle = timers_parser.add_mutually_exclusive_group()
    toggle.add_argument("--enable", action="store_true", help="Enable the timer")
    toggle.add_argument("--disable", action="store_true", help="Disable the timer")

    # trigger command
    trigger_parser = subparsers.add_parser("trigger", help="Announce one of a timer's messages now")
    trigger_parser.add_argument("timer_id", help="Timer ID (e.g., ads)")
    trigger_parser.add_argument(
        "--index",
        type=int,
        help="Message to announce (default: first; each run starts a fresh rotation)",
    )
    trigger_parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT)

    # closing command
    subparsers.add_parser("closing", help="Show the closing schedule")

    # closing-trigger command
    closing_trigger_parser = subparsers.add_parser(
        "closing-trigger",
        help="Announce a closing notice now",
    )
    closing_trigger_parser.add_argument("announcement_id", help="Announcement ID (e.g., closing-15)")
    closing_trigger_parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT)

    # voices command
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("-e", "--engine", help="Engine (default: configured engine)")

    # settings command
    settings_parser = subparsers.add_parser("settings", help="Show or change speech settings")
    settings_parser.add_argument("-e", "--engine", help="Engine (murf, elevenlabs, local)")
    settings_parser.add_argument("-v", "--voice", help="Voice ID from the engine's catalog")
    settings_parser.add_argument("--volume", type=float, help="Volume 0.0-1.0")
    settings_parser.add_argument("--rate", type=float, help="Local speaking rate 0.5-2.0")
    settings_parser.add_argument("--pitch", type=float, help="Local pitch 0.0-2.0")

    # version command
    subparsers.add_parser("version", help="Show version")

    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 0

    if parsed.command == "version":
        from voice_announcer import __version__
        print(f"voice-announcer {__version__}")
        return 0

    from voice_announcer.monitoring import configure_logging
    configure_logging(parsed.log_level, json_format=parsed.log_format == "json")

    try:
        config = _make_config(parsed)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    handlers = {
        "run": _cmd_run,
        "speak": _cmd_speak,
        "render": _cmd_render,
        "timers": _cmd_timers,
        "trigger": _cmd_trigger,
        "closing": _cmd_closing,
        "closing-trigger": _cmd_closing_trigger,
        "voices": _cmd_voices,
        "settings": _cmd_settings,
    }
    return handlers[parsed.command](parsed, config)


def _make_config(args: argparse.Namespace):
    from voice_announcer.config import Config

    if args.data_dir:
        return Config(data_dir=Path(args.data_dir))
    return Config()


def _cmd_run(args: argparse.Namespace, config) -> int:
    """Run the board until interrupted."""
    from voice_announcer.board import AnnouncementBoard

    board = AnnouncementBoard(config)
    board.on_announcement(lambda a: print(f"[{a.timestamp:%H:%M:%S}] {a.source}: {a.message}"))

    with board:
        if not args.no_timers:
            board.timers.start()
        board.start()
        print("Announcement board running. Press Ctrl+C to stop.")

        deadline = time.monotonic() + args.duration if args.duration else None
        try:
            while deadline is None or time.monotonic() < deadline:
                time.sleep(0.5)
        except KeyboardInterrupt:
            print()

    print("Stopped.")
    return 0


def _cmd_speak(args: argparse.Namespace, config) -> int:
    """Handle speak command."""
    from voice_announcer.runtime.speech import SpeechEngine
    from voice_announcer.settings import default_settings, load_settings
    from voice_announcer.storage import JsonFileStore

    store = JsonFileStore(config.data_dir)
    settings = load_settings(store, default_settings(config.default_engine))
    if args.engine:
        try:
            settings = settings.merged(engine=args.engine)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    # Engine override is for this call only, so settings are not persisted
    engine = SpeechEngine(settings, config=config)
    engine.speak(args.text)
    return _wait_for_speech(engine, args.timeout)


def _cmd_render(args: argparse.Namespace, config) -> int:
    """Synthesize with a remote engine and save to WAV."""
    from voice_announcer.engine.loader import load_remote_backend
    from voice_announcer.errors import AnnouncerError
    from voice_announcer.runtime.playback import decode_audio, save_wav
    from voice_announcer.settings import voices_for_engine

    voice = args.voice or voices_for_engine(args.engine)[0].id

    try:
        backend = load_remote_backend(args.engine, config)
        response = backend.synthesize(args.text, voice)
        if not response.success:
            print(f"Error: {response.error}", file=sys.stderr)
            return 1
        clip = decode_audio(response.audio_bytes())
        path = save_wav(clip, args.output)
    except AnnouncerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Audio saved to: {path}")
    print(f"Duration: {clip.duration_seconds:.2f}s")
    print(f"Voice: {voice} ({backend.name})")
    return 0


def _cmd_timers(args: argparse.Namespace, config) -> int:
    """List timers, or edit one."""
    from voice_announcer.scheduling.timers import RecurringScheduler
    from voice_announcer.storage import JsonFileStore

    scheduler = RecurringScheduler(lambda message, timer: None, store=JsonFileStore(config.data_dir))

    changes: dict = {}
    if args.interval is not None:
        changes["interval_minutes"] = args.interval
    if args.name:
        changes["name"] = args.name
    if args.enable:
        changes["enabled"] = True
    if args.disable:
        changes["enabled"] = False

    if changes:
        if not args.timer_id:
            print("Error: --id is required to edit a timer", file=sys.stderr)
            return 1
        try:
            updated = scheduler.update_timer(args.timer_id, **changes)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        if not updated:
            print(f"Error: Unknown timer: {args.timer_id}", file=sys.stderr)
            return 1

    print("Recurring timers:")
    print()
    for timer in scheduler.timers:
        status = "on " if timer.enabled else "off"
        print(f"  [{status}] {timer.id:15} - {timer.name} (every {timer.interval_minutes:g} min)")
        for message in timer.messages:
            print(f"            {message}")
        print()

    return 0


def _cmd_trigger(args: argparse.Namespace, config) -> int:
    """Announce a timer's current message."""
    from voice_announcer.board import AnnouncementBoard

    board = AnnouncementBoard(config)
    try:
        found = board.timers.trigger_now(args.timer_id, message_index=args.index)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if not found:
        print(f"Error: Unknown timer: {args.timer_id}", file=sys.stderr)
        return 1
    return _wait_for_speech(board.speech, args.timeout)


def _cmd_closing(args: argparse.Namespace, config) -> int:
    """Show the closing schedule."""
    from voice_announcer.scheduling.closing import ClosingAnnouncer

    closing = ClosingAnnouncer(lambda message: None)

    print(f"Closing time: {closing.closing_time}")
    print()
    for announcement in closing.announcements:
        print(f"  {announcement.time}  {announcement.id:12} - {announcement.message}")
    print()

    upcoming = closing.next_announcement
    if upcoming:
        print(f"Next: {upcoming.id} in {closing.time_until_next}")
    else:
        print("No closing announcements left today.")
    return 0


def _cmd_closing_trigger(args: argparse.Namespace, config) -> int:
    """Announce a closing notice now."""
    from voice_announcer.board import AnnouncementBoard

    board = AnnouncementBoard(config)
    if not board.closing.trigger_manually(args.announcement_id):
        print(f"Error: Unknown closing announcement: {args.announcement_id}", file=sys.stderr)
        return 1
    return _wait_for_speech(board.speech, args.timeout)


def _cmd_voices(args: argparse.Namespace, config) -> int:
    """List available voices."""
    from voice_announcer.errors import LocalSpeechError
    from voice_announcer.settings import (
        EngineKind,
        default_settings,
        load_settings,
        voices_for_engine,
    )
    from voice_announcer.storage import JsonFileStore

    try:
        kind = EngineKind.parse(args.engine) if args.engine else load_settings(
            JsonFileStore(config.data_dir), default_settings(config.default_engine)
        ).engine
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Voices ({kind.value}):")
    print()

    if kind.is_remote:
        for voice in voices_for_engine(kind):
            print(f"  {voice.id:22} - {voice.name} ({voice.description})")
        return 0

    from voice_announcer.engine.loader import load_local_backend

    try:
        voices = load_local_backend(config).list_voices()
    except LocalSpeechError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for voice in voices:
        languages = ", ".join(str(lang) for lang in getattr(voice, "languages", []) or [])
        print(f"  {voice.name:30} {languages}")
    return 0


def _cmd_settings(args: argparse.Namespace, config) -> int:
    """Show or change the persisted speech settings."""
    from voice_announcer.settings import (
        EngineKind,
        default_settings,
        load_settings,
        save_settings,
        voices_for_engine,
    )
    from voice_announcer.storage import JsonFileStore

    store = JsonFileStore(config.data_dir)
    settings = load_settings(store, default_settings(config.default_engine))

    changes: dict = {}
    if args.engine:
        changes["engine"] = args.engine
    for name in ("volume", "rate", "pitch"):
        value = getattr(args, name)
        if value is not None:
            changes[name] = value

    try:
        if changes:
            settings = settings.merged(**changes)

        catalog = voices_for_engine(settings.engine)
        if args.voice:
            match = next((v for v in catalog if v.id == args.voice), None)
            if match is None and settings.engine is not EngineKind.LOCAL:
                raise ValueError(f"Unknown {settings.engine.value} voice: {args.voice}")
            settings = settings.merged(
                voice_id=args.voice,
                voice_name=match.name if match else args.voice,
            )
        elif "engine" in changes and catalog and settings.voice_id not in {v.id for v in catalog}:
            # Switching engines without a voice picks the new engine's default
            settings = settings.merged(voice_id=catalog[0].id, voice_name=catalog[0].name)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if changes or args.voice:
        save_settings(store, settings)
        print("Settings saved.")
        print()

    print(f"  Engine: {settings.engine.value}")
    print(f"  Voice:  {settings.voice_name} ({settings.voice_id})")
    print(f"  Volume: {settings.volume:.0%}")
    print(f"  Rate:   {settings.rate:.1f}x")
    print(f"  Pitch:  {settings.pitch:.1f}")
    return 0


def _wait_for_speech(engine, timeout: float) -> int:
    if not engine.wait_until_idle(timeout):
        print("Error: Timed out waiting for speech", file=sys.stderr)
        engine.stop()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
