"""
Generation backend contract.

The call session talks to any text-generation service through
``GenerationBackend``. Requests and responses mirror the Ollama
``/api/generate`` wire format.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

DEFAULT_STOP_SEQUENCES = ["User:", "\nUser:", "Human:", "\nHuman:", "user:", "\nuser:"]

ChunkCallback = Callable[[str], None]


@dataclass
class GenerationOptions:
    temperature: float = 0.7
    max_output_tokens: int = 1000
    stop_sequences: List[str] = field(default_factory=lambda: list(DEFAULT_STOP_SEQUENCES))
    top_k: Optional[int] = 40
    top_p: Optional[float] = 0.9
    repeat_penalty: Optional[float] = 1.1
    seed: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "temperature": self.temperature,
            "num_predict": self.max_output_tokens,
            "stop": list(self.stop_sequences),
        }
        for key in ("top_k", "top_p", "repeat_penalty", "seed"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass
class GenerationRequest:
    prompt: str
    options: GenerationOptions = field(default_factory=GenerationOptions)
    context: Optional[List[int]] = None
    stream: bool = False


@dataclass
class GenerationResponse:
    text: str
    done: bool = True
    context: Optional[List[int]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class GenerationBackend(abc.ABC):
    """A text-generation service reachable over the network."""

    @abc.abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Run one blocking generation. Raises BackendUnreachable on failure."""

    @abc.abstractmethod
    async def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> GenerationResponse:
        """Stream a generation, passing fragments to ``on_chunk``; returns the accumulated text."""

    async def check_connection(self) -> bool:
        return True

    async def list_models(self) -> List[str]:
        return []

    async def close(self) -> None:
        pass
