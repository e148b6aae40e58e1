"""
Response sanitization for speech output.

One pipeline, driven by a ``SanitizerConfig``, turns raw model output into
text a speech synthesizer can read aloud. Stages run in a fixed order and
each can be switched off:

  1. reasoning spans and role prefixes
  2. markdown
  3. emoji and emoticons
  4. numbers (percent, currency)
  5. punctuation runs and informal abbreviations
  6. speech cleanup (URLs, parentheses, quotes, unsafe symbols)
  7. length bounding at sentence, then word granularity

Whitespace is always collapsed and the result trimmed. ``sanitize`` is pure:
the same text and config always give the same output.

Presets:
  SPEECH        everything on, 500 characters max (also DEFAULT)
  CONVERSATION  reasoning and role prefix only, for history/context
  DISPLAY       reasoning only, keeps markdown, emoji and the role prefix
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import List, Optional, Tuple

from ..logging_config import get_logger
from .lexicon import DEFAULT_LANGUAGE, Lexicon, get_lexicon
from .reasoning import ReasoningStripper, has_reasoning_markers, strip_reasoning

logger = get_logger(__name__)

DEFAULT_ROLE_NAMES: Tuple[str, ...] = ("Asistenqu", "AI", "Assistant", "Bot")

SUITABILITY_MIN_READABLE_RATIO = 0.5

SPEECH_MAX_RAW_CHARS = 1000


@dataclass(frozen=True)
class SanitizerConfig:
    strip_reasoning: bool = True
    strip_role_prefix: bool = True
    strip_markdown: bool = True
    strip_emoji: bool = True
    normalize_numbers: bool = True
    normalize_punctuation: bool = True
    speech_cleanup: bool = True
    max_length: Optional[int] = None
    language: str = DEFAULT_LANGUAGE
    role_names: Tuple[str, ...] = DEFAULT_ROLE_NAMES

    def with_language(self, language: str) -> "SanitizerConfig":
        return replace(self, language=language)


SPEECH = SanitizerConfig(max_length=500)

CONVERSATION = SanitizerConfig(
    strip_markdown=False,
    strip_emoji=False,
    normalize_numbers=False,
    normalize_punctuation=False,
    speech_cleanup=False,
)

DISPLAY = SanitizerConfig(
    strip_role_prefix=False,
    strip_markdown=False,
    strip_emoji=False,
    normalize_numbers=False,
    normalize_punctuation=False,
    speech_cleanup=False,
)

DEFAULT = SPEECH

PRESETS = {
    "speech": SPEECH,
    "conversation": CONVERSATION,
    "display": DISPLAY,
}

# --- markdown -------------------------------------------------------------

_FENCED_CODE_RE = re.compile(r"```.*?(?:```|\Z)", re.DOTALL)
_IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_HRULE_RE = re.compile(r"^\s*(?:[-*_]\s*){3,}$", re.MULTILINE)
_HEADING_RE = re.compile(r"^\s*#{1,6}\s+", re.MULTILINE)
_BLOCKQUOTE_RE = re.compile(r"^\s*>\s?", re.MULTILINE)
_BULLET_RE = re.compile(r"^\s*[-*+•]\s+", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s+", re.MULTILINE)
_BOLD_RE = re.compile(r"(\*\*|__)(.+?)\1", re.DOTALL)
_ITALIC_STAR_RE = re.compile(r"\*(?!\s)([^*\n]+?)\*")
_ITALIC_UNDERSCORE_RE = re.compile(r"(?<!\w)_(?!\s)([^_\n]+?)_(?!\w)")
_STRIKE_RE = re.compile(r"~~(.+?)~~")
_INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")

# --- emoji ----------------------------------------------------------------

_EMOJI_RE = re.compile(
    "["
    "\U0001F300-\U0001F5FF"
    "\U0001F600-\U0001F64F"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\U0001F900-\U0001F9FF"
    "\U0001FA70-\U0001FAFF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "\uFE0F"
    "\u200D"
    "]+"
)
_EMOTICON_RE = re.compile(r"(?<![\w:])(?:[:;=][-']?[)(\]\[DPpOo3]+|<3|[xX]D)(?!\w)")
_SHORTCODE_RE = re.compile(r"(?<!\w):[a-z][a-z0-9_+-]*:(?!\w)", re.IGNORECASE)

# --- numbers --------------------------------------------------------------

_AMOUNT = r"\d+(?:[.,]\d+)*"
_PERCENT_RE = re.compile(rf"({_AMOUNT})\s?%")
# "Rp5.000,-" and "Rp5.000,00" are both plain 5.000 rupiah
_CURRENCY_RE = re.compile(rf"(?<!\w)(Rp\.?|IDR|USD|EUR|\$|€|£|¥)\s?({_AMOUNT})(?:,-)?", re.IGNORECASE)
_ZERO_CENTS_RE = re.compile(r",00$")

# --- punctuation ----------------------------------------------------------

_EXCLAIM_RUN_RE = re.compile(r"!{2,}")
_QUESTION_RUN_RE = re.compile(r"\?{2,}")
_ELLIPSIS_RE = re.compile(r"\.{3,}|…+")

# --- cleanup --------------------------------------------------------------

_HTML_TAG_RE = re.compile(r"<[^<>\n]*>")
_URL_RE = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)
_PARENTHESIZED_RE = re.compile(r"\([^()]*\)")
_QUOTE_RE = re.compile(r"[\"“”„«»`]|(?<!\w)['‘’]|['‘’](?!\w)")
_UNSAFE_SYMBOL_RE = re.compile(r"[*#_~^|\\<>{}\[\]=+@&$€£¥%]")
_WHITESPACE_RE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"\s+([.,!?;:])")
_REPEATED_COMMA_RE = re.compile(r",(?:\s*,)+")
_LEADING_PUNCT_RE = re.compile(r"^[\s,;:]+")

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

_READABLE_RE = re.compile(r"[\w\s.,!?]")
_SPEECH_PROBLEM_CHAR_RE = re.compile(r"[<>{}\[\]]")


@lru_cache(maxsize=None)
def _role_prefix_re(role_names: Tuple[str, ...]) -> re.Pattern:
    names = "|".join(re.escape(name) for name in role_names if name)
    return re.compile(rf"^\s*(?:{names})\s*:\s*", re.IGNORECASE)


def _strip_role_prefix(text: str, role_names: Tuple[str, ...]) -> str:
    pattern = _role_prefix_re(role_names)
    previous = None
    while previous != text:
        previous = text
        text = pattern.sub("", text)
    return text


def _strip_markdown(text: str) -> str:
    text = _FENCED_CODE_RE.sub("", text)
    text = _IMAGE_RE.sub("", text)
    text = _LINK_RE.sub(r"\1", text)
    text = _HRULE_RE.sub("", text)
    text = _HEADING_RE.sub("", text)
    text = _BLOCKQUOTE_RE.sub("", text)
    text = _BULLET_RE.sub("", text)
    text = _NUMBERED_RE.sub("", text)
    text = _BOLD_RE.sub(r"\2", text)
    text = _ITALIC_STAR_RE.sub(r"\1", text)
    text = _ITALIC_UNDERSCORE_RE.sub(r"\1", text)
    text = _STRIKE_RE.sub(r"\1", text)
    return _INLINE_CODE_RE.sub(r"\1", text)


def _strip_emoji(text: str) -> str:
    text = _EMOJI_RE.sub("", text)
    text = _EMOTICON_RE.sub("", text)
    return _SHORTCODE_RE.sub("", text)


def _normalize_numbers(text: str, lexicon: Lexicon) -> str:
    text = _PERCENT_RE.sub(lambda m: f"{m.group(1)} {lexicon.percent_word}", text)

    def _currency(match: re.Match) -> str:
        symbol = match.group(1).lower().rstrip(".")
        amount = _ZERO_CENTS_RE.sub("", match.group(2))
        return f"{amount} {lexicon.currency_names[symbol]}"

    return _CURRENCY_RE.sub(_currency, text)


@lru_cache(maxsize=None)
def _abbreviation_re(language: str) -> re.Pattern:
    lexicon = get_lexicon(language)
    words = sorted(lexicon.abbreviations, key=len, reverse=True)
    return re.compile(r"\b(" + "|".join(re.escape(word) for word in words) + r")\b", re.IGNORECASE)


def _normalize_punctuation(text: str, lexicon: Lexicon) -> str:
    text = _EXCLAIM_RUN_RE.sub("!", text)
    text = _QUESTION_RUN_RE.sub("?", text)
    text = _ELLIPSIS_RE.sub("...", text)

    def _expand(match: re.Match) -> str:
        word = match.group(1)
        expansion = lexicon.abbreviations[word.lower()]
        if word[0].isupper():
            return expansion[0].upper() + expansion[1:]
        return expansion

    return _abbreviation_re(lexicon.language).sub(_expand, text)


def _speech_cleanup(text: str) -> str:
    text = _URL_RE.sub("", text)
    previous = None
    while previous != text:
        previous = text
        text = _PARENTHESIZED_RE.sub("", text)
    text = _QUOTE_RE.sub("", text)
    return _UNSAFE_SYMBOL_RE.sub("", text)


def _collapse_whitespace(text: str) -> str:
    text = _WHITESPACE_RE.sub(" ", text)
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    text = _REPEATED_COMMA_RE.sub(",", text)
    text = _LEADING_PUNCT_RE.sub("", text)
    return text.strip()


def bound_length(text: str, limit: int) -> str:
    """
    Fit ``text`` into ``limit`` characters.

    Whole sentences are kept first, each closed with a period. When not even
    the first sentence fits, whole words are kept and closed with a period.
    Hard truncation is the last resort. The result never exceeds ``limit``.
    """
    if limit < 1:
        return ""
    if len(text) <= limit:
        return text

    result = ""
    for sentence in (part.strip() for part in _SENTENCE_SPLIT_RE.split(text)):
        if not sentence:
            continue
        candidate = f"{result} {sentence}." if result else f"{sentence}."
        if len(candidate) > limit:
            break
        result = candidate
    if result:
        strategy = "sentences"
    else:
        for word in text.split():
            candidate = f"{result} {word}" if result else word
            # one character is reserved for the closing period
            if len(candidate.rstrip(".!?,;: ")) + 1 > limit:
                break
            result = candidate
        result = result.rstrip(".!?,;: ")
        if result:
            result += "."
            strategy = "words"
        else:
            result = text[:limit].rstrip()
            strategy = "hard"

    logger.debug(
        "Sanitized text bounded",
        original_length=len(text),
        limit=limit,
        bounded_length=len(result),
        strategy=strategy,
    )
    return result


def sanitize(
    text: str,
    config: SanitizerConfig = DEFAULT,
    *,
    stripper: Optional[ReasoningStripper] = None,
) -> str:
    """Run the sanitization pipeline over ``text``. Never raises on malformed input."""
    if not text:
        return ""
    lexicon = get_lexicon(config.language)
    result = text

    if config.strip_reasoning:
        result = strip_reasoning(result, stripper)
    if config.strip_role_prefix and config.role_names:
        result = _strip_role_prefix(result, config.role_names)
    if config.strip_markdown:
        result = _strip_markdown(result)
    if config.strip_emoji:
        result = _strip_emoji(result)
    if config.normalize_numbers:
        result = _normalize_numbers(result, lexicon)
    if config.normalize_punctuation:
        result = _normalize_punctuation(result, lexicon)

    result = _HTML_TAG_RE.sub("", result)
    if config.speech_cleanup:
        result = _speech_cleanup(result)
    result = _collapse_whitespace(result)
    if config.strip_role_prefix and config.role_names:
        # markdown, quote and parenthesis removal can bring a prefix to the front
        previous = None
        while previous != result:
            previous = result
            result = _collapse_whitespace(_strip_role_prefix(result, config.role_names))

    if config.max_length is not None and len(result) > config.max_length:
        result = bound_length(result, config.max_length)
    return result


def is_suitable(text: str, config: SanitizerConfig = DEFAULT) -> bool:
    """
    Whether ``text`` can be handed to speech synthesis.

    The text is sanitized first; empty output or output where readable
    characters (word characters, whitespace, ``. , ! ?``) are at most half
    of the length is rejected.
    """
    cleaned = sanitize(text, config)
    if not cleaned.strip():
        return False
    readable = len(_READABLE_RE.findall(cleaned))
    return readable / len(cleaned) > SUITABILITY_MIN_READABLE_RATIO


def validate_for_speech(text: str, config: SanitizerConfig = DEFAULT) -> Tuple[bool, List[str], str]:
    """
    Inspect raw ``text`` before it is spoken.

    Returns ``(is_valid, issues, cleaned)``. The issues describe the raw
    text: leftover reasoning markers (a lone unterminated one included),
    more than ``SPEECH_MAX_RAW_CHARS`` characters, or characters speech
    engines tend to read out (``< > { } [ ]``). ``cleaned`` is the
    sanitized text whatever the issues.
    """
    text = text or ""
    issues: List[str] = []
    if has_reasoning_markers(text):
        issues.append("contains reasoning tags")
    if len(text) > SPEECH_MAX_RAW_CHARS:
        issues.append("too long for speech")
    if _SPEECH_PROBLEM_CHAR_RE.search(text):
        issues.append("contains problematic characters")
    return not issues, issues, sanitize(text, config)


def format_for_speech(text: str, language: str = DEFAULT_LANGUAGE) -> str:
    return sanitize(text, SPEECH.with_language(language))


def format_for_conversation(text: str, language: str = DEFAULT_LANGUAGE) -> str:
    return sanitize(text, CONVERSATION.with_language(language))


def format_for_display(text: str, language: str = DEFAULT_LANGUAGE) -> str:
    return sanitize(text, DISPLAY.with_language(language))
