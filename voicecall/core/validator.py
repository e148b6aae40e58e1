"""
Validation of raw model output.

Small local models regularly stop in the middle of a ``<think>`` span, slip
into Chinese, or get cut off by the token budget. ``ResponseValidator``
flags these cases, trims a dangling reasoning span and sanitizes what is left
so the caller can decide whether the answer is usable or a retry is needed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Pattern, Tuple

from ..logging_config import get_logger
from ..text.lexicon import primary_subtag
from ..text.reasoning import END_MARKER_RE, START_MARKER_RE
from ..text.sanitizer import CONVERSATION, SanitizerConfig, sanitize

logger = get_logger(__name__)

TRUNCATION_MIN_LENGTH = 50

_SENTENCE_END_RE = re.compile("[.!?\u3002\uff01\uff1f]\\s*$")

# CJK ideographs, kana, hangul
_CJK_RE = re.compile("[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")

# Languages written in the scripts above are allowed to use them
_CJK_LANGUAGES = {"zh", "ja", "ko"}

# Retry answers for other languages keep ASCII and Latin-1 only
_NON_LATIN1_RE = re.compile("[^\u0000-\u007f\u00a0-\u00ff]")


class IssueKind(str, Enum):
    UNTERMINATED_REASONING_SPAN = "unterminated_reasoning_span"
    FOREIGN_SCRIPT_DETECTED = "foreign_script_detected"
    APPEARS_TRUNCATED = "appears_truncated"


RETRY_ISSUES = frozenset({IssueKind.UNTERMINATED_REASONING_SPAN, IssueKind.FOREIGN_SCRIPT_DETECTED})


@dataclass(frozen=True)
class ValidationResult:
    is_complete: bool
    cleaned_text: str
    issues: Tuple[IssueKind, ...] = ()

    @property
    def needs_retry(self) -> bool:
        return any(issue in RETRY_ISSUES for issue in self.issues)


def disallowed_script_pattern(language: str) -> Optional[Pattern[str]]:
    """Pattern matching characters that should not appear in ``language`` output."""
    if primary_subtag(language) in _CJK_LANGUAGES:
        return None
    return _CJK_RE


def strip_to_retry_script(text: str, language: str) -> str:
    """
    Stricter cleanup for retry answers.

    Outside the CJK languages everything beyond ASCII and Latin-1 is
    dropped, so Cyrillic, Thai or emoji leaking into a retry never reach
    the synthesizer.
    """
    if disallowed_script_pattern(language) is None:
        return text
    return _NON_LATIN1_RE.sub("", text)


class ResponseValidator:
    """Detects malformed generations and produces a best-effort cleaned text."""

    def __init__(
        self,
        language: str = "id-ID",
        clarification_phrase: str = "Maaf, bisa tolong ulangi pertanyaannya?",
        ai_name: str = "Asistenqu",
        sanitizer_config: SanitizerConfig = CONVERSATION,
    ):
        self._language = language
        self._clarification_phrase = clarification_phrase
        self._ai_name = ai_name
        self._foreign_script = disallowed_script_pattern(language)
        config = sanitizer_config.with_language(primary_subtag(language))
        if ai_name and ai_name not in config.role_names:
            config = replace(config, role_names=(ai_name,) + config.role_names)
        self._sanitizer_config = config

    @property
    def language(self) -> str:
        return self._language

    def process_response(self, raw: str) -> ValidationResult:
        raw = raw or ""
        issues = []

        open_count = len(START_MARKER_RE.findall(raw))
        close_count = len(END_MARKER_RE.findall(raw))
        trimmed = raw.strip()
        candidate = trimmed

        if open_count > close_count:
            issues.append(IssueKind.UNTERMINATED_REASONING_SPAN)
            last_open = None
            for last_open in START_MARKER_RE.finditer(trimmed):
                pass
            last_close = None
            for last_close in END_MARKER_RE.finditer(trimmed):
                pass
            if last_open is not None and (last_close is None or last_open.start() > last_close.start()):
                candidate = trimmed[:last_open.start()]

        if self._foreign_script is not None and self._foreign_script.search(raw):
            issues.append(IssueKind.FOREIGN_SCRIPT_DETECTED)

        has_proper_ending = bool(_SENTENCE_END_RE.search(trimmed))
        if len(raw) > TRUNCATION_MIN_LENGTH and not has_proper_ending and open_count != close_count:
            issues.append(IssueKind.APPEARS_TRUNCATED)

        cleaned = sanitize(candidate, self._sanitizer_config)
        if not cleaned or cleaned.rstrip(":").strip().lower() == self._ai_name.lower():
            cleaned = self._clarification_phrase

        result = ValidationResult(is_complete=not issues, cleaned_text=cleaned, issues=tuple(issues))
        if issues:
            logger.info(
                "Model output flagged",
                issues=[issue.value for issue in issues],
                open_markers=open_count,
                close_markers=close_count,
                raw=raw,
            )
        else:
            logger.debug("Model output accepted", cleaned=cleaned)
        return result
