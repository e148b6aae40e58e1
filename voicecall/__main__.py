"""
Command line entry point.

    python -m voicecall chat [--config PATH]
    python -m voicecall sanitize [--preset speech|conversation|display] [--language TAG]
    python -m voicecall models [--config PATH]

In a chat, typed lines are the caller's utterances. Lines starting with a
slash are commands: /mute, /unmute, /reset, /history, /quit.
"""

import argparse
import asyncio
import json
import sys

from .config import AppConfig, load_config, validate_config
from .console import ConsoleCapture, ConsoleSynthesizer
from .core.errors import VoiceCallError
from .core.models import CallStatus
from .core.session import CallSession
from .logging_config import configure_logging, get_logger
from .pipelines.ollama import OllamaClient
from .text.sanitizer import PRESETS, sanitize

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="voicecall", description="Voice call core driven from a terminal")
    sub = parser.add_subparsers(dest="command", required=True)

    chat = sub.add_parser("chat", help="Hold a call with the configured backend")
    chat.add_argument("--config", default=None, help="Path to the YAML configuration file")

    clean = sub.add_parser("sanitize", help="Sanitize text read from stdin")
    clean.add_argument("--preset", choices=sorted(PRESETS), default="speech")
    clean.add_argument("--language", default="id-ID")

    models = sub.add_parser("models", help="List models available on the backend")
    models.add_argument("--config", default=None, help="Path to the YAML configuration file")
    return parser


def _load_checked_config(path) -> AppConfig:
    config = load_config(path)
    configure_logging(
        log_level=config.logging.level.upper(),
        log_to_file=config.logging.to_file,
        log_file_path=config.logging.file_path,
    )
    errors, warnings = validate_config(config)
    if errors:
        logger.error("Configuration validation failed", errors=errors, warnings=warnings)
        raise SystemExit(2)
    if warnings:
        logger.warning("Configuration warnings", warnings=warnings)
    return config


async def _handle_command(session: CallSession, command: str) -> bool:
    """Apply a slash command; returns False when the call should end."""
    if command == "/quit":
        return False
    if command == "/mute":
        session.set_muted(True)
    elif command == "/unmute":
        session.set_muted(False)
    elif command == "/reset":
        session.reset()
    elif command == "/history":
        print(json.dumps(session.history.export(), ensure_ascii=False, indent=2))
    else:
        print(f"unknown command {command}", file=sys.stderr)
    return True


async def run_chat(config: AppConfig) -> int:
    capture = ConsoleCapture()
    synthesizer = ConsoleSynthesizer(speaker=config.ai_name)
    session = CallSession(config, capture, synthesizer, on_chunk=lambda chunk: print(chunk, end="", flush=True))
    try:
        async with session:
            while session.status not in (CallStatus.ENDED, CallStatus.ERROR):
                event = await capture.read()
                if event is None:
                    break
                if event.text.startswith("/"):
                    if not await _handle_command(session, event.text.strip()):
                        break
                    continue
                if not capture.active:
                    logger.info("Input ignored while microphone is off", transcript=event.text)
                    continue
                await session.handle_transcript(event)
    except VoiceCallError as e:
        logger.error("Call could not continue", error=str(e), error_type=type(e).__name__)
        return 1
    return 0


async def run_models(config: AppConfig) -> int:
    client = OllamaClient(
        base_url=config.backend.base_url,
        model=config.backend.model,
        timeout_sec=config.backend.timeout_sec,
    )
    try:
        names = await client.list_models()
    finally:
        await client.close()
    for name in names:
        print(name)
    return 0 if names else 1


def run_sanitize(preset: str, language: str) -> int:
    text = sys.stdin.read()
    print(sanitize(text, PRESETS[preset].with_language(language)))
    return 0


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)
    if args.command == "sanitize":
        configure_logging(log_level="WARNING")
        return run_sanitize(args.preset, args.language)

    config = _load_checked_config(args.config)
    if args.command == "models":
        return asyncio.run(run_models(config))
    try:
        return asyncio.run(run_chat(config))
    except KeyboardInterrupt:
        return 130
    finally:
        logger.info("Voice call has shut down")


if __name__ == "__main__":
    sys.exit(main())
