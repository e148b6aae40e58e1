"""
Configuration normalization.

This module handles:
- Language tag canonicalisation (id_id -> id-ID) with a supported-language fallback
- Generation parameter bounds (temperature clamp, minimum token budget)
"""

from typing import Any, Dict

SUPPORTED_LANGUAGES = {
    "id-ID": "Bahasa Indonesia",
    "en-US": "English (US)",
    "en-GB": "English (UK)",
}

DEFAULT_LANGUAGE = "id-ID"

TEMPERATURE_MIN = 0.1
TEMPERATURE_MAX = 1.2

# Reasoning models spend most of the budget inside <think>; below this the
# answer after the span is routinely cut off.
MIN_MAX_TOKENS = 1500


def normalize_language_tag(tag: Any) -> str:
    """
    Canonicalise a BCP-47 style tag and map it onto a supported language.

    A bare primary subtag ("en") maps to the first supported region for it.
    Anything unsupported falls back to DEFAULT_LANGUAGE.
    """
    raw = str(tag or "").strip().replace("_", "-")
    if not raw:
        return DEFAULT_LANGUAGE
    parts = raw.split("-")
    canonical = parts[0].lower()
    if len(parts) > 1 and parts[1]:
        canonical = f"{canonical}-{parts[1].upper()}"
    if canonical in SUPPORTED_LANGUAGES:
        return canonical
    for supported in SUPPORTED_LANGUAGES:
        if supported.split("-")[0] == parts[0].lower():
            return supported
    return DEFAULT_LANGUAGE


def normalize_languages(config_data: Dict[str, Any]) -> None:
    """
    Normalise voice.language and speech_recognition.language in-place.

    Args:
        config_data: Configuration dictionary to modify in-place
    """
    for section_name in ('voice', 'speech_recognition'):
        section = config_data.get(section_name)
        if isinstance(section, dict) and 'language' in section:
            section['language'] = normalize_language_tag(section['language'])


def normalize_generation_bounds(config_data: Dict[str, Any]) -> None:
    """
    Clamp backend.temperature and raise backend.max_tokens to the minimum budget.

    Non-numeric values are left untouched for pydantic to reject.

    Args:
        config_data: Configuration dictionary to modify in-place
    """
    backend = config_data.get('backend')
    if not isinstance(backend, dict):
        return
    if 'temperature' in backend:
        try:
            backend['temperature'] = min(max(float(backend['temperature']), TEMPERATURE_MIN), TEMPERATURE_MAX)
        except (TypeError, ValueError):
            pass
    try:
        backend['max_tokens'] = max(int(backend.get('max_tokens', MIN_MAX_TOKENS)), MIN_MAX_TOKENS)
    except (TypeError, ValueError):
        pass
