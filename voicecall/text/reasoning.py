"""
Removal of model "thinking" output.

Reasoning models wrap their internal deliberation in ``<think>...</think>``
style tags and, when the generation budget runs out, often leave the span
open. Small models also leak deliberation as plain lines ("Okay, let me...").
Those lines are only dropped when the text carries a reasoning marker or
spans several lines. Sanitized output is a single unmarked line, so
stripping it again leaves it alone.

Everything here is best-effort pattern matching tuned to observed model
output. ``ReasoningStripper`` holds the line heuristics so they can be
replaced without touching the rest of the sanitizer.
"""

from __future__ import annotations

import re
from typing import List, Optional, Pattern, Sequence

REASONING_TAGS = ("think", "thinking", "reasoning")

_TAG_ALTERNATION = "|".join(REASONING_TAGS)

START_MARKER_RE = re.compile(rf"<\s*(?:{_TAG_ALTERNATION})\s*>", re.IGNORECASE)
END_MARKER_RE = re.compile(rf"<\s*/\s*(?:{_TAG_ALTERNATION})\s*>", re.IGNORECASE)

# Non-greedy: a span ends at the nearest end marker after its start marker.
_BALANCED_SPAN_RE = re.compile(
    rf"{START_MARKER_RE.pattern}(.*?){END_MARKER_RE.pattern}",
    re.IGNORECASE | re.DOTALL,
)

REASONING_LINE_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(rf"^\s*(?:{_TAG_ALTERNATION})\b", re.IGNORECASE),
    re.compile(r"^\s*(?:okay|ok|alright|hmm+)\b.*\blet me\b", re.IGNORECASE),
    re.compile(r"^\s*I need to\b", re.IGNORECASE),
    re.compile(r"^\s*first,.*\bthen,", re.IGNORECASE),
)


def count_start_markers(text: str) -> int:
    return len(START_MARKER_RE.findall(text or ""))


def count_end_markers(text: str) -> int:
    return len(END_MARKER_RE.findall(text or ""))


class ReasoningStripper:
    """Strips reasoning spans and reasoning-looking lines from model output."""

    def __init__(self, line_patterns: Optional[Sequence[Pattern[str]]] = None):
        self._line_patterns = tuple(REASONING_LINE_PATTERNS if line_patterns is None else line_patterns)

    def strip(self, text: str) -> str:
        """
        Remove reasoning from ``text``.

        Order matters:
          1. balanced start/end spans are removed
          2. a stray end marker drops everything before it (the start marker
             was swallowed by the prompt template)
          3. an unterminated start marker drops everything after it
          4. lines matching the heuristics are dropped, when the text was
             marked or multi-line to begin with
        """
        if not text:
            return ""
        check_lines = "\n" in text or has_reasoning_markers(text)
        result = _BALANCED_SPAN_RE.sub("", text)

        last_end = None
        for last_end in END_MARKER_RE.finditer(result):
            pass
        if last_end is not None:
            result = result[last_end.end():]

        start = START_MARKER_RE.search(result)
        if start:
            result = result[:start.start()]

        if check_lines and self._line_patterns:
            kept = [line for line in result.split("\n") if not self._looks_like_reasoning(line)]
            result = "\n".join(kept)
        return result

    def extract(self, text: str) -> List[str]:
        """Return the inner text of every reasoning span, including an unterminated tail."""
        if not text:
            return []
        spans = [match.group(1).strip() for match in _BALANCED_SPAN_RE.finditer(text)]
        remainder = _BALANCED_SPAN_RE.sub("", text)
        start = START_MARKER_RE.search(remainder)
        if start:
            spans.append(remainder[start.end():].strip())
        return [span for span in spans if span]

    def _looks_like_reasoning(self, line: str) -> bool:
        return any(pattern.search(line) for pattern in self._line_patterns)


_default_stripper = ReasoningStripper()


def strip_reasoning(text: str, stripper: Optional[ReasoningStripper] = None) -> str:
    """Remove reasoning spans and leaked reasoning lines."""
    return (stripper or _default_stripper).strip(text)


def extract_reasoning(text: str) -> List[str]:
    """Inner text of reasoning spans, for debugging and logging."""
    return _default_stripper.extract(text)


def has_reasoning_spans(text: str) -> bool:
    """True when the text contains at least one complete start/end span."""
    return bool(_BALANCED_SPAN_RE.search(text or ""))


def has_reasoning_markers(text: str) -> bool:
    """
    True when the text contains any reasoning start or end marker.

    Unlike ``has_reasoning_spans`` a lone unterminated start or a stray end
    marker counts too.
    """
    return bool(START_MARKER_RE.search(text or "") or END_MARKER_RE.search(text or ""))
