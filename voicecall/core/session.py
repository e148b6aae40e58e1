"""
Call session: one voice call from greeting to hang-up.

The session owns the conversation history, the backend continuation token
and the backend client, and enforces turn-taking between capture,
generation and playback:

- one turn is processed at a time; a final transcript arriving while a turn
  is in flight is dropped
- capture is stopped while generating and while speaking, then resumed
  unless the call is muted or over
- any utterance still playing is cancelled before a new one starts
- history gets the user utterance and the answer together, only once the
  answer is accepted
"""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from ..config import AppConfig
from ..logging_config import get_logger, set_call_id
from ..pipelines.base import ChunkCallback, GenerationBackend
from ..pipelines.ollama import OllamaClient
from ..pipelines.prompts import PromptBuilder
from ..text.sanitizer import SPEECH, is_suitable, validate_for_speech
from .errors import (
    BackendUnreachable,
    CaptureUnavailable,
    SpeechSynthesisError,
    SpeechSynthesisUnavailable,
    UnsuitableForSpeech,
)
from .models import CallStatus, ChatResult, ConversationHistory, GenerationContext
from .responder import ChatResponder
from .speech import SpeechCapture, SpeechSynthesizer, TranscriptEvent, Utterance
from .validator import ResponseValidator

logger = get_logger(__name__)

MIN_TRANSCRIPT_CHARS = 2

StatusCallback = Callable[[CallStatus], None]

_TERMINAL_STATUSES = (CallStatus.ENDED, CallStatus.ERROR)


class CallSession:
    """
    A single voice call.

    Use as an async context manager, or call ``start()`` and ``end()``
    explicitly. Transcripts from the capture side are fed to
    ``handle_transcript``.
    """

    def __init__(
        self,
        config: AppConfig,
        capture: SpeechCapture,
        synthesizer: SpeechSynthesizer,
        backend: Optional[GenerationBackend] = None,
        *,
        on_status: Optional[StatusCallback] = None,
        on_chunk: Optional[ChunkCallback] = None,
        responder: Optional[ChatResponder] = None,
    ):
        self.config = config
        self.call_id: Optional[str] = None
        self.history = ConversationHistory()
        self.context = GenerationContext()

        self._capture = capture
        self._synthesizer = synthesizer
        self._backend = backend
        self._owns_backend = backend is None
        self._on_status = on_status
        self._on_chunk = on_chunk
        self._responder = responder

        self._status = CallStatus.CONNECTING
        self._muted = False
        self._turn_lock = asyncio.Lock()

        language = config.voice.language
        self._prompts = PromptBuilder(ai_name=config.ai_name, language=language)
        self.phrases = self._prompts.phrases
        self._speech_config = SPEECH.with_language(language)

    @property
    def status(self) -> CallStatus:
        return self._status

    @property
    def muted(self) -> bool:
        return self._muted

    @property
    def busy(self) -> bool:
        """True while a turn is being generated or answered."""
        return self._turn_lock.locked()

    def _set_status(self, status: CallStatus) -> None:
        if status is self._status:
            return
        logger.debug("Call status changed", previous=self._status.value, status=status.value)
        self._status = status
        if self._on_status is not None:
            try:
                self._on_status(status)
            except Exception as e:
                logger.warning("Status callback failed", status=status.value, error=str(e))

    def _build_responder(self) -> ChatResponder:
        backend_cfg = self.config.backend
        validator = ResponseValidator(
            language=self.config.voice.language,
            clarification_phrase=self.phrases.clarification,
            ai_name=self.config.ai_name,
        )
        return ChatResponder(
            self._backend,
            self.context,
            prompts=self._prompts,
            validator=validator,
            temperature=backend_cfg.temperature,
            max_tokens=backend_cfg.max_tokens,
            history_window=backend_cfg.history_window,
        )

    async def start(self) -> None:
        """
        Open the call and speak the greeting.

        Raises:
            SpeechSynthesisUnavailable: no synthesizer in this runtime
            CaptureUnavailable: no speech capture in this runtime
            BackendUnreachable: the backend did not answer the connectivity check
        """
        self.call_id = set_call_id()
        self._set_status(CallStatus.CONNECTING)
        logger.info("Starting call", ai_name=self.config.ai_name, language=self.config.voice.language)

        if not self._synthesizer.available:
            self._set_status(CallStatus.ERROR)
            raise SpeechSynthesisUnavailable("speech synthesis is not available")
        if not self._capture.available:
            self._set_status(CallStatus.ERROR)
            raise CaptureUnavailable("speech capture is not available")

        if self._backend is None:
            backend_cfg = self.config.backend
            self._backend = OllamaClient(
                base_url=backend_cfg.base_url,
                model=backend_cfg.model,
                timeout_sec=backend_cfg.timeout_sec,
            )
            self._owns_backend = True

        if not await self._backend.check_connection():
            self._set_status(CallStatus.ERROR)
            await self._close_backend()
            raise BackendUnreachable(f"cannot reach generation backend at {self.config.backend.base_url}")

        if self._responder is None:
            self._responder = self._build_responder()

        self._set_status(CallStatus.CONNECTED)
        greeting = self.phrases.greeting.format(user_name=self.config.user_name, ai_name=self.config.ai_name)
        await self.speak(greeting)

    async def handle_transcript(self, event: TranscriptEvent) -> Optional[ChatResult]:
        """
        Run one turn for a recognised utterance.

        Interim results, utterances shorter than two characters, transcripts
        arriving while another turn is in flight and transcripts after the
        call ended are ignored (None is returned).
        """
        if not event.is_final:
            return None
        text = event.text.strip()
        if len(text) < MIN_TRANSCRIPT_CHARS:
            return None
        if self._status in _TERMINAL_STATUSES or self._responder is None:
            logger.debug("Transcript ignored, call not active", status=self._status.value)
            return None
        if self._turn_lock.locked():
            logger.info("Transcript dropped, turn in flight", transcript=text)
            return None

        async with self._turn_lock:
            self._capture.stop()
            self._set_status(CallStatus.THINKING)
            logger.info("User turn", transcript=text)

            if self.config.backend.stream:
                result = await self._responder.send_streaming(text, self.history.turns, self._on_chunk)
            else:
                result = await self._responder.send_with_validation(text, self.history.turns)

            if self._status is CallStatus.ENDED:
                return result

            if not result.succeeded:
                logger.warning("Turn failed", error=result.error, retried=result.retried)
                await self.speak(self.phrases.backend_error)
                return result

            self.history.append_exchange(text, result.text)
            await self.speak(result.text, unsuitable_phrase=self.phrases.unsuitable_follow_up)
            return result

    def _prepare_speech(self, text: str) -> str:
        """Sanitize ``text`` for the synthesizer; raises UnsuitableForSpeech."""
        if not text or not text.strip():
            return self.phrases.empty_response
        is_valid, issues, cleaned = validate_for_speech(text, self._speech_config)
        if not is_valid:
            logger.debug("Raw answer needed cleanup", issues=issues)
        if not is_suitable(cleaned, self._speech_config):
            raise UnsuitableForSpeech(f"not speakable after cleanup: {text!r}")
        return cleaned

    async def speak(self, text: str, unsuitable_phrase: Optional[str] = None) -> None:
        """
        Play ``text`` after speech sanitization, then resume listening.

        Text that cannot be spoken is replaced by ``unsuitable_phrase``,
        the generic apology by default.
        """
        if self._status in _TERMINAL_STATUSES:
            return
        try:
            spoken = self._prepare_speech(text)
        except UnsuitableForSpeech as e:
            logger.warning("Text not suitable for speech", error=str(e))
            spoken = unsuitable_phrase or self.phrases.unsuitable_apology
        voice = self.config.voice

        self._capture.stop()
        self._synthesizer.cancel()
        self._set_status(CallStatus.SPEAKING)
        try:
            await self._synthesizer.speak(
                Utterance(
                    text=spoken,
                    voice_uri=voice.voice_uri,
                    rate=voice.rate,
                    pitch=voice.pitch,
                    volume=voice.volume,
                    language=voice.language,
                )
            )
        except SpeechSynthesisError as e:
            logger.error("Speech synthesis failed", error=str(e), text=spoken)
            self._set_status(CallStatus.ERROR)
            return
        self._resume_capture()

    def _resume_capture(self) -> None:
        if self._status in _TERMINAL_STATUSES:
            return
        if self._muted:
            self._set_status(CallStatus.CONNECTED)
            return
        if self._capture.active:
            self._capture.stop()
        self._capture.start()
        self._set_status(CallStatus.LISTENING)

    def set_muted(self, muted: bool) -> None:
        """Mute stops capture; unmute resumes it when the session is idle."""
        self._muted = muted
        logger.info("Microphone muted" if muted else "Microphone unmuted")
        if muted:
            self._capture.stop()
            if self._status is CallStatus.LISTENING:
                self._set_status(CallStatus.CONNECTED)
        elif self._status is CallStatus.CONNECTED and not self.busy:
            self._resume_capture()

    def reset(self) -> None:
        """Forget the conversation so far; the next turn starts fresh."""
        self.history.clear()
        self.context.reset()
        logger.info("Conversation reset")

    async def _close_backend(self) -> None:
        if self._owns_backend and self._backend is not None:
            await self._backend.close()

    async def end(self) -> None:
        """Hang up. History is kept for export."""
        if self._status is CallStatus.ENDED:
            return
        self._set_status(CallStatus.ENDED)
        self._synthesizer.cancel()
        self._capture.stop()
        self.context.reset()
        await self._close_backend()
        logger.info("Call ended", turns=len(self.history))

    async def __aenter__(self) -> "CallSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.end()
