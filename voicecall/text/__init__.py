"""Text sanitization for speech synthesis."""

from .reasoning import (
    ReasoningStripper,
    extract_reasoning,
    has_reasoning_markers,
    has_reasoning_spans,
    strip_reasoning,
)
from .sanitizer import (
    CONVERSATION,
    DEFAULT,
    DISPLAY,
    PRESETS,
    SPEECH,
    SanitizerConfig,
    bound_length,
    format_for_conversation,
    format_for_display,
    format_for_speech,
    is_suitable,
    sanitize,
    validate_for_speech,
)

__all__ = [
    'ReasoningStripper',
    'extract_reasoning',
    'has_reasoning_markers',
    'has_reasoning_spans',
    'strip_reasoning',
    'CONVERSATION',
    'DEFAULT',
    'DISPLAY',
    'PRESETS',
    'SPEECH',
    'SanitizerConfig',
    'bound_length',
    'format_for_conversation',
    'format_for_display',
    'format_for_speech',
    'is_suitable',
    'sanitize',
    'validate_for_speech',
]
