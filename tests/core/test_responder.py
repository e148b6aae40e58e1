"""
Tests for the validated chat exchange and its single retry.
"""

import random

import pytest

from voicecall.core.errors import BackendUnreachable
from voicecall.core.models import ConversationHistory, GenerationContext
from voicecall.core.responder import ChatResponder, retry_options
from voicecall.pipelines.base import GenerationBackend, GenerationResponse

FALLBACK_GREETING = "Halo! Ada yang bisa saya bantu?"


class _FakeBackend(GenerationBackend):
    """Returns queued replies in order; exceptions in the queue are raised."""

    def __init__(self, *replies):
        self._replies = list(replies)
        self.requests = []

    def _next(self, request):
        self.requests.append(request)
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, GenerationResponse):
            return reply
        return GenerationResponse(text=reply, context=[9, 9])

    async def generate(self, request):
        return self._next(request)

    async def generate_stream(self, request, on_chunk=None):
        response = self._next(request)
        if on_chunk:
            for fragment in response.text.split(" "):
                on_chunk(fragment)
        return response


def _responder(backend, context=None, **kwargs):
    return ChatResponder(backend, context if context is not None else GenerationContext(), rng=random.Random(0), **kwargs)


class TestPrimaryStage:

    @pytest.mark.asyncio
    async def test_accepted_answer(self):
        backend = _FakeBackend(GenerationResponse(text="<think>x</think>Halo! Apa kabar?", context=[4, 5, 6]))
        context = GenerationContext()
        result = await _responder(backend, context).send_with_validation("Halo")

        assert result.succeeded is True
        assert result.retried is False
        assert result.text == "Halo! Apa kabar?"
        assert len(backend.requests) == 1
        assert backend.requests[0].context is None
        assert backend.requests[0].prompt.endswith("User: Halo\nAsistenqu: ")
        assert context.tokens == [4, 5, 6]

    @pytest.mark.asyncio
    async def test_generation_settings_applied(self):
        backend = _FakeBackend("Baik.")
        await _responder(backend, temperature=0.5, max_tokens=1500).send_with_validation("Halo")

        options = backend.requests[0].options
        assert options.temperature == 0.5
        assert options.max_output_tokens == 1500
        assert options.seed is not None

    @pytest.mark.asyncio
    async def test_context_threaded_into_request(self):
        backend = _FakeBackend("Baik.")
        await _responder(backend, GenerationContext([1, 2, 3])).send_with_validation("Halo")
        assert backend.requests[0].context == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_history_window(self):
        history = ConversationHistory()
        for i in range(3):
            history.append_exchange(f"u{i}", f"a{i}")
        backend = _FakeBackend("Baik.")
        await _responder(backend, history_window=3).send_with_validation("Halo", history.turns)

        prompt = backend.requests[0].prompt
        assert "Asistenqu: a1\n" in prompt
        assert "User: u2\n" in prompt
        assert "User: u1\n" not in prompt
        assert "User: u0\n" not in prompt

    @pytest.mark.asyncio
    async def test_truncated_answer_accepted_without_retry(self):
        raw = "pikiran</think>Ini adalah jawaban yang cukup panjang tetapi terpotong di tengah"
        backend = _FakeBackend(raw)
        result = await _responder(backend).send_with_validation("Ceritakan")

        assert len(backend.requests) == 1
        assert result.retried is False
        assert result.succeeded is True

    @pytest.mark.asyncio
    async def test_backend_failure(self):
        backend = _FakeBackend(BackendUnreachable("connection refused"))
        context = GenerationContext([1])
        result = await _responder(backend, context).send_with_validation("Halo")

        assert result.succeeded is False
        assert result.text == ""
        assert "connection refused" in result.error
        assert len(backend.requests) == 1
        assert context.tokens == [1]


class TestRetryStage:

    @pytest.mark.asyncio
    async def test_unterminated_reasoning_retried_exactly_once(self):
        backend = _FakeBackend(
            "<think>a</think>Jaw <think>b <think>c",
            "Halo, ada yang bisa dibantu?",
        )
        context = GenerationContext([1, 2])
        result = await _responder(backend, context).send_with_validation("Halo")

        assert len(backend.requests) == 2
        assert result.retried is True
        assert result.succeeded is True
        assert "<think>" not in result.text
        assert result.text == "Halo, ada yang bisa dibantu?"
        # retry continuation token is discarded
        assert context.tokens == [1, 2]

    @pytest.mark.asyncio
    async def test_retry_request_is_short_and_stateless(self):
        history = ConversationHistory()
        history.append_exchange("sebelumnya", "jawaban lama")
        backend = _FakeBackend("你好，我是助手", "Baik.")
        await _responder(backend, GenerationContext([1, 2, 3])).send_with_validation("Halo", history.turns)

        primary, retry = backend.requests
        assert primary.context == [1, 2, 3]
        assert retry.context is None
        assert "jawaban lama" not in retry.prompt
        assert retry.options.temperature == 0.7
        assert retry.options.max_output_tokens == 200
        assert retry.options.top_k == 20
        assert retry.options.top_p == 0.8
        assert retry.options.to_payload()["num_predict"] == 200

    @pytest.mark.asyncio
    async def test_malformed_retry_returned_without_third_call(self):
        backend = _FakeBackend("<think>satu", "<think>lagi <think>dan lagi")
        result = await _responder(backend).send_with_validation("Halo")

        assert len(backend.requests) == 2
        assert result.retried is True
        assert "<think>" not in result.text
        assert result.text

    @pytest.mark.asyncio
    async def test_foreign_script_removed_from_retry(self):
        backend = _FakeBackend("你好", "Halo 你好 teman")
        result = await _responder(backend).send_with_validation("Halo")

        assert "你" not in result.text
        assert result.text.startswith("Halo")

    @pytest.mark.asyncio
    async def test_non_latin_script_removed_from_retry(self):
        backend = _FakeBackend("<think>satu", "Halo Привет teman สวัสดี")
        result = await _responder(backend).send_with_validation("Halo")

        assert result.text == "Halo teman"

    @pytest.mark.asyncio
    async def test_empty_retry_falls_back_to_greeting(self):
        backend = _FakeBackend("你好", "你好")
        result = await _responder(backend).send_with_validation("Halo")

        assert result.text == FALLBACK_GREETING
        assert result.succeeded is True

    @pytest.mark.asyncio
    async def test_retry_backend_failure_falls_back_to_greeting(self):
        backend = _FakeBackend("<think>satu", BackendUnreachable("timeout"))
        result = await _responder(backend).send_with_validation("Halo")

        assert result.succeeded is False
        assert result.retried is True
        assert result.text == FALLBACK_GREETING

    def test_retry_options_payload(self):
        payload = retry_options().to_payload()
        assert payload["num_predict"] == 200
        assert "repeat_penalty" not in payload
        assert "seed" not in payload


class TestStreaming:

    @pytest.mark.asyncio
    async def test_chunks_forwarded_and_validated_once(self):
        backend = _FakeBackend(GenerationResponse(text="<think>x</think>Halo teman!", done=True, context=[7]))
        context = GenerationContext()
        chunks = []
        result = await _responder(backend, context).send_streaming("Halo", on_chunk=chunks.append)

        assert chunks == ["<think>x</think>Halo", "teman!"]
        assert result.text == "Halo teman!"
        assert backend.requests[0].stream is True
        assert context.tokens == [7]

    @pytest.mark.asyncio
    async def test_no_retry_when_streaming(self):
        backend = _FakeBackend(GenerationResponse(text="Halo <think>terpotong", done=False))
        context = GenerationContext([3])
        result = await _responder(backend, context).send_streaming("Halo")

        assert len(backend.requests) == 1
        assert result.text == "Halo"
        assert context.tokens == [3]

    @pytest.mark.asyncio
    async def test_stream_failure(self):
        backend = _FakeBackend(BackendUnreachable("reset"))
        result = await _responder(backend).send_streaming("Halo")
        assert result.succeeded is False
