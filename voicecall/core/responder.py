"""
Validated chat exchange with a single bounded retry.

A turn runs through at most two stages:

    PRIMARY --(malformed)--> RETRY --> done
    PRIMARY --(accepted or backend failure)--> done

PRIMARY uses the full structured prompt, the recent history and the
continuation token. RETRY uses a short strict prompt with no history and no
token, and its answer is returned whatever its issues. The stage tuple is the
only loop, so a turn never makes more than two backend calls.
"""

from __future__ import annotations

import random
from enum import Enum
from typing import Optional, Sequence

from ..logging_config import get_logger
from ..pipelines.base import (
    ChunkCallback,
    GenerationBackend,
    GenerationOptions,
    GenerationRequest,
)
from ..pipelines.prompts import PromptBuilder
from .errors import BackendUnreachable
from .models import ChatResult, ConversationTurn, GenerationContext
from .validator import ResponseValidator, strip_to_retry_script

logger = get_logger(__name__)

RETRY_STOP_SEQUENCES = ["User:", "\nUser:", "user:", "\nuser:"]


class Stage(str, Enum):
    PRIMARY = "primary"
    RETRY = "retry"


TURN_STAGES = (Stage.PRIMARY, Stage.RETRY)


def retry_options() -> GenerationOptions:
    """Cooler, shorter generation used after a malformed answer."""
    return GenerationOptions(
        temperature=0.7,
        max_output_tokens=200,
        stop_sequences=list(RETRY_STOP_SEQUENCES),
        top_k=20,
        top_p=0.8,
        repeat_penalty=None,
        seed=None,
    )


class ChatResponder:
    """Sends user messages to the backend and returns speakable, validated text."""

    def __init__(
        self,
        backend: GenerationBackend,
        context: GenerationContext,
        *,
        prompts: Optional[PromptBuilder] = None,
        validator: Optional[ResponseValidator] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        history_window: int = 3,
        rng: Optional[random.Random] = None,
    ):
        self._backend = backend
        self._context = context
        self._prompts = prompts or PromptBuilder()
        self._validator = validator or ResponseValidator(
            clarification_phrase=self._prompts.phrases.clarification,
            ai_name=self._prompts.ai_name,
        )
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._history_window = history_window
        self._rng = rng or random.Random()

    @property
    def context(self) -> GenerationContext:
        return self._context

    def _primary_request(self, message: str, history: Sequence[ConversationTurn], stream: bool = False) -> GenerationRequest:
        recent = list(history)[-self._history_window:] if self._history_window > 0 else []
        return GenerationRequest(
            prompt=self._prompts.structured(message, recent),
            options=GenerationOptions(
                temperature=self._temperature,
                max_output_tokens=self._max_tokens,
                seed=self._rng.randrange(1_000_000),
            ),
            context=self._context.tokens,
            stream=stream,
        )

    def _retry_request(self, message: str) -> GenerationRequest:
        return GenerationRequest(prompt=self._prompts.simple(message), options=retry_options())

    async def send_with_validation(self, message: str, history: Sequence[ConversationTurn] = ()) -> ChatResult:
        """
        Get a validated answer for ``message``.

        Returns ``succeeded=False`` when the backend could not be reached; the
        text is then empty on the primary stage and the fallback greeting on
        the retry stage.
        """
        first_issues = ()
        for stage in TURN_STAGES:
            if stage is Stage.PRIMARY:
                request = self._primary_request(message, history)
            else:
                request = self._retry_request(message)
                logger.warning(
                    "Answer malformed, retrying with simple prompt",
                    issues=[issue.value for issue in first_issues],
                )

            try:
                response = await self._backend.generate(request)
            except BackendUnreachable as e:
                return self._backend_failure(stage, e, first_issues)

            validation = self._validator.process_response(response.text)

            if stage is Stage.PRIMARY:
                if validation.needs_retry:
                    first_issues = validation.issues
                    continue
                self._context.replace(response.context)
                return ChatResult(text=validation.cleaned_text, succeeded=True, issues=validation.issues)

            return self._finish_retry(validation.cleaned_text, first_issues + validation.issues)

        # unreachable: the RETRY stage always returns
        raise AssertionError("turn stages exhausted")

    async def send_streaming(
        self,
        message: str,
        history: Sequence[ConversationTurn] = (),
        on_chunk: Optional[ChunkCallback] = None,
    ) -> ChatResult:
        """
        Stream an answer to ``on_chunk`` and validate the accumulated text once.

        Streaming answers are shown as they arrive, so there is no retry; the
        validated text still replaces what was displayed.
        """
        request = self._primary_request(message, history, stream=True)
        try:
            response = await self._backend.generate_stream(request, on_chunk)
        except BackendUnreachable as e:
            logger.error("Streaming generation failed", error=str(e))
            return ChatResult(text="", succeeded=False, error=str(e))

        validation = self._validator.process_response(response.text)
        if response.done:
            self._context.replace(response.context)
        return ChatResult(text=validation.cleaned_text, succeeded=True, issues=validation.issues)

    def _finish_retry(self, cleaned: str, issues: tuple) -> ChatResult:
        text = strip_to_retry_script(cleaned, self._validator.language)
        text = " ".join(text.split())
        if not text:
            text = self._prompts.phrases.fallback_greeting
        logger.info("Retry answer used", issues=[issue.value for issue in issues], text=text)
        return ChatResult(text=text, succeeded=True, issues=issues, retried=True)

    def _backend_failure(self, stage: Stage, error: BackendUnreachable, issues: tuple) -> ChatResult:
        if stage is Stage.PRIMARY:
            logger.error("Generation failed", error=str(error), status=error.status)
            return ChatResult(text="", succeeded=False, error=str(error))
        logger.error("Retry generation failed", error=str(error), status=error.status)
        return ChatResult(
            text=self._prompts.phrases.fallback_greeting,
            succeeded=False,
            issues=issues,
            retried=True,
            error=str(error),
        )
