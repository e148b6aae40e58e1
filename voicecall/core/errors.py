"""
Error taxonomy for a voice call.

Only capability absence and a backend that cannot be reached while the call
starts end the call. Everything else is recovered inside the turn with a
spoken fallback phrase.
"""

from typing import Optional


class VoiceCallError(Exception):
    """Base class for all voice call errors."""


class BackendUnreachable(VoiceCallError):
    """Network, HTTP or timeout failure talking to the generation backend."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class UnsuitableForSpeech(VoiceCallError):
    """Cleaned text failed the suitability check."""


class CapabilityUnavailable(VoiceCallError):
    """A runtime capability the call depends on is missing."""


class SpeechSynthesisUnavailable(CapabilityUnavailable):
    pass


class CaptureUnavailable(CapabilityUnavailable):
    pass


class SpeechSynthesisError(VoiceCallError):
    """The synthesizer reported an error while playing an utterance."""


class TurnOrderError(VoiceCallError):
    """Conversation history would contain two consecutive user turns."""
