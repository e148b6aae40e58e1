"""
Configuration package for the voice call core.

This package contains:
- schema: pydantic models, load_config and validate_config
- loaders: YAML file loading and parsing
- defaults: Environment-provided default values
- normalization: Language tag and generation bound normalization
"""

from .schema import (
    AppConfig,
    BackendConfig,
    LoggingConfig,
    SpeechRecognitionConfig,
    VoiceConfig,
    load_config,
    validate_config,
)

__all__ = [
    'AppConfig',
    'BackendConfig',
    'LoggingConfig',
    'SpeechRecognitionConfig',
    'VoiceConfig',
    'load_config',
    'validate_config',
]
