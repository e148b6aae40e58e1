"""
Ollama client for the ``/api/generate`` completion endpoint.

SETUP:
1. Install Ollama: https://ollama.ai
2. Pull a model: ollama pull qwen2.5:0.5b
3. Start the server: ollama serve (listens on http://localhost:11434)
4. Point backend.base_url in config/voicecall.yaml at it

The client sends completion-style prompts and threads the ``context``
continuation token the server returns. Streaming responses arrive as
newline-delimited JSON; fragments are accumulated until ``done``.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import aiohttp

from ..core.errors import BackendUnreachable
from ..logging_config import get_logger
from .base import ChunkCallback, GenerationBackend, GenerationRequest, GenerationResponse

logger = get_logger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434"
_DEFAULT_MODEL = "qwen2.5:0.5b"
_TAGS_TIMEOUT_SEC = 10


class OllamaClient(GenerationBackend):
    """
    Generation backend for a self-hosted Ollama instance.

    An aiohttp session is created lazily and owned by the client unless one
    is passed in.
    """

    def __init__(
        self,
        base_url: str = _DEFAULT_BASE_URL,
        model: str = _DEFAULT_MODEL,
        timeout_sec: float = 60.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = (base_url or _DEFAULT_BASE_URL).rstrip("/")
        self.model = model or _DEFAULT_MODEL
        self.timeout_sec = timeout_sec
        self._session = session
        self._owns_session = session is None

        # Guardrail: an OpenAI-style base URL yields 404s on /api/generate.
        parsed = urlparse(self.base_url)
        if (parsed.hostname or "").lower() == "api.openai.com" or (parsed.path or "").endswith("/v1"):
            logger.warning(
                "Ollama base_url looks like an OpenAI endpoint; /api/generate will 404",
                base_url=self.base_url,
                hint="Set backend.base_url to http://<ollama-host>:11434",
            )

    async def _ensure_session(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    def _build_payload(self, request: GenerationRequest, stream: bool) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": request.prompt,
            "stream": stream,
            "options": request.options.to_payload(),
        }
        if request.context:
            payload["context"] = list(request.context)
        return payload

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        await self._ensure_session()
        assert self._session

        url = f"{self.base_url}/api/generate"
        payload = self._build_payload(request, stream=False)
        logger.debug(
            "Ollama generate request",
            model=self.model,
            prompt=request.prompt,
            with_context=bool(request.context),
            num_predict=payload["options"].get("num_predict"),
        )

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout_sec)
            async with self._session.post(url, json=payload, timeout=timeout) as response:
                if response.status >= 400:
                    body = await response.text()
                    logger.error(
                        "Ollama API error",
                        status=response.status,
                        body_preview=body[:200],
                    )
                    raise BackendUnreachable(f"HTTP {response.status}: {body[:200]}", status=response.status)
                data = await response.json()
        except asyncio.TimeoutError as e:
            logger.warning("Ollama request timeout", timeout=self.timeout_sec)
            raise BackendUnreachable(f"Ollama did not answer within {self.timeout_sec}s") from e
        except aiohttp.ClientError as e:
            logger.error("Ollama request failed", error=str(e), endpoint=url)
            raise BackendUnreachable(f"Cannot reach Ollama at {self.base_url}: {e}") from e

        text = data.get("response") or ""
        logger.info(
            "Ollama response",
            model=self.model,
            response_length=len(text),
            done=data.get("done", True),
            eval_count=data.get("eval_count"),
        )
        return GenerationResponse(
            text=text,
            done=bool(data.get("done", True)),
            context=data.get("context"),
            metadata={
                "model": data.get("model", self.model),
                "eval_count": data.get("eval_count"),
                "total_duration": data.get("total_duration"),
            },
        )

    async def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> GenerationResponse:
        await self._ensure_session()
        assert self._session

        url = f"{self.base_url}/api/generate"
        payload = self._build_payload(request, stream=True)
        fragments: List[str] = []
        context: Optional[List[int]] = None
        done = False

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout_sec)
            async with self._session.post(url, json=payload, timeout=timeout) as response:
                if response.status >= 400:
                    body = await response.text()
                    logger.error("Ollama stream API error", status=response.status, body_preview=body[:200])
                    raise BackendUnreachable(f"HTTP {response.status}: {body[:200]}", status=response.status)

                async for raw_line in response.content:
                    line = raw_line.decode("utf-8", errors="ignore").strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug("Skipping unparsable stream line", line_preview=line[:80])
                        continue
                    fragment = data.get("response") or ""
                    if fragment:
                        fragments.append(fragment)
                        if on_chunk:
                            on_chunk(fragment)
                    if data.get("done"):
                        done = True
                        context = data.get("context")
                        break
        except asyncio.TimeoutError as e:
            logger.warning("Ollama stream timeout", timeout=self.timeout_sec, received_chunks=len(fragments))
            raise BackendUnreachable(f"Ollama stream stalled after {self.timeout_sec}s") from e
        except aiohttp.ClientError as e:
            logger.error("Ollama stream failed", error=str(e), received_chunks=len(fragments))
            raise BackendUnreachable(f"Cannot reach Ollama at {self.base_url}: {e}") from e

        text = "".join(fragments)
        logger.info("Ollama stream finished", model=self.model, response_length=len(text), done=done)
        return GenerationResponse(text=text, done=done, context=context, metadata={"model": self.model})

    async def _fetch_tags(self) -> Dict[str, Any]:
        await self._ensure_session()
        assert self._session
        timeout = aiohttp.ClientTimeout(total=_TAGS_TIMEOUT_SEC)
        async with self._session.get(f"{self.base_url}/api/tags", timeout=timeout) as response:
            if response.status != 200:
                raise BackendUnreachable(f"Ollama API returned status {response.status}", status=response.status)
            return await response.json()

    async def check_connection(self) -> bool:
        try:
            await self._fetch_tags()
            return True
        except (BackendUnreachable, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(
                "Ollama connectivity check failed",
                endpoint=self.base_url,
                error=str(e) or type(e).__name__,
                hint="Ensure `ollama serve` is running and reachable",
            )
            return False

    async def list_models(self) -> List[str]:
        try:
            data = await self._fetch_tags()
        except (BackendUnreachable, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("Failed to list Ollama models", endpoint=self.base_url, error=str(e) or type(e).__name__)
            return []
        return [model.get("name", "") for model in data.get("models", []) if model.get("name")]

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        logger.debug("Ollama client closed")
