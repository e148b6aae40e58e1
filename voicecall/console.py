"""
Console stand-ins for speech capture and synthesis.

Typed lines play the role of final transcripts and answers are printed
instead of spoken, so a call can be driven from a terminal.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Optional, TextIO

from .core.speech import SpeechCapture, SpeechSynthesizer, TranscriptEvent, Utterance
from .logging_config import get_logger

logger = get_logger(__name__)


class ConsoleCapture(SpeechCapture):
    """Reads one line of stdin per utterance."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream or sys.stdin
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        self._active = True

    def stop(self) -> None:
        self._active = False

    async def read(self) -> Optional[TranscriptEvent]:
        """Next typed line as a final transcript; None at end of input."""
        line = await asyncio.to_thread(self._stream.readline)
        if not line:
            return None
        return TranscriptEvent(text=line.rstrip("\n"), is_final=True)


class ConsoleSynthesizer(SpeechSynthesizer):
    """Prints utterances prefixed with the assistant name."""

    def __init__(self, speaker: str = "Asistenqu", stream: Optional[TextIO] = None):
        self._speaker = speaker
        self._stream = stream or sys.stdout

    async def speak(self, utterance: Utterance) -> None:
        print(f"{self._speaker}: {utterance.text}", file=self._stream, flush=True)

    def cancel(self) -> None:
        pass
