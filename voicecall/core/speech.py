"""
Speech capture and speech synthesis contracts.

Both are provided by the runtime (browser, OS, a TTS engine). The call
session only needs to start/stop capture, receive final transcripts, and
play one utterance at a time.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass


@dataclass(frozen=True)
class TranscriptEvent:
    text: str
    is_final: bool = True


@dataclass(frozen=True)
class Utterance:
    text: str
    voice_uri: str = ""
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    language: str = "id-ID"


class SpeechCapture(abc.ABC):
    """Microphone capture plus speech-to-text."""

    @property
    def available(self) -> bool:
        return True

    @property
    @abc.abstractmethod
    def active(self) -> bool:
        """True while a capture session is running."""

    @abc.abstractmethod
    def start(self) -> None:
        """Begin a capture session."""

    @abc.abstractmethod
    def stop(self) -> None:
        """End the current capture session; no-op when none is running."""


class SpeechSynthesizer(abc.ABC):
    """Text-to-speech playback."""

    @property
    def available(self) -> bool:
        return True

    @abc.abstractmethod
    async def speak(self, utterance: Utterance) -> None:
        """Play ``utterance`` and return when it ends. Raises SpeechSynthesisError on error."""

    @abc.abstractmethod
    def cancel(self) -> None:
        """Stop any utterance that is playing."""
