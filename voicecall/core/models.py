"""
Core data models for a voice call.

Conversation turns, the append-only conversation history, the backend
continuation token, and the result of a chat exchange.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import TurnOrderError


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class CallStatus(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    LISTENING = "listening"
    THINKING = "thinking"
    SPEAKING = "speaking"
    ERROR = "error"
    ENDED = "ended"


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


class ConversationHistory:
    """
    Ordered, append-only record of a call.

    The full history is kept for display; only ``window(n)`` is sent to the
    backend. A user turn may never directly follow another user turn.
    """

    def __init__(self) -> None:
        self._turns: List[ConversationTurn] = []

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self):
        return iter(self._turns)

    @property
    def turns(self) -> Tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    def append(self, role: Role, content: str, timestamp: Optional[datetime] = None) -> ConversationTurn:
        role = Role(role)
        if role is Role.USER and self._turns and self._turns[-1].role is Role.USER:
            raise TurnOrderError("user turn cannot follow another user turn")
        turn = ConversationTurn(role=role, content=content, timestamp=timestamp or datetime.now())
        self._turns.append(turn)
        return turn

    def append_exchange(self, user_text: str, assistant_text: str) -> None:
        """Record a completed turn: the user utterance and the accepted answer."""
        self.append(Role.USER, user_text)
        self.append(Role.ASSISTANT, assistant_text)

    def window(self, size: int) -> List[ConversationTurn]:
        if size <= 0:
            return []
        return list(self._turns[-size:])

    def export(self) -> List[Dict[str, Any]]:
        return [turn.to_dict() for turn in self._turns]

    def clear(self) -> None:
        self._turns.clear()


class GenerationContext:
    """Continuation token returned by the backend, threaded into the next call."""

    def __init__(self, tokens: Optional[Sequence[int]] = None) -> None:
        self._tokens: Tuple[int, ...] = tuple(tokens or ())

    def __bool__(self) -> bool:
        return bool(self._tokens)

    @property
    def tokens(self) -> Optional[List[int]]:
        """Token as sent on the wire; None when empty so the field is omitted."""
        return list(self._tokens) if self._tokens else None

    def replace(self, tokens: Optional[Sequence[int]]) -> None:
        if tokens:
            self._tokens = tuple(tokens)

    def reset(self) -> None:
        self._tokens = ()


@dataclass
class ChatResult:
    """Outcome of one user message sent through validation and retry."""
    text: str
    succeeded: bool
    issues: Tuple[Any, ...] = ()
    retried: bool = False
    error: Optional[str] = None
