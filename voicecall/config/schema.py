"""
Configuration models for the voice call core.

Pydantic v2 models loaded from a YAML file with environment variable
expansion. Loading runs in phases: read the file, fill gaps from the
environment, normalise, then validate into AppConfig.
"""

import os
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from .defaults import apply_backend_defaults, apply_identity_defaults, apply_language_defaults
from .loaders import DEFAULT_CONFIG_PATH, load_yaml_with_env_expansion, resolve_config_path
from .normalization import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    TEMPERATURE_MAX,
    TEMPERATURE_MIN,
    normalize_generation_bounds,
    normalize_languages,
)

logger = structlog.get_logger(__name__)


class BackendConfig(BaseModel):
    base_url: str = Field(default="http://localhost:11434")
    model: str = Field(default="qwen2.5:0.5b")
    temperature: float = Field(default=0.7)
    max_tokens: int = Field(default=1000)
    timeout_sec: float = Field(default=60.0)
    history_window: int = Field(default=3)  # turns sent with the structured prompt
    stream: bool = Field(default=False)


class VoiceConfig(BaseModel):
    language: str = Field(default=DEFAULT_LANGUAGE)
    voice_uri: str = Field(default="")  # empty: runtime default voice
    rate: float = Field(default=1.0)
    pitch: float = Field(default=1.0)
    volume: float = Field(default=1.0)


class SpeechRecognitionConfig(BaseModel):
    language: str = Field(default=DEFAULT_LANGUAGE)
    continuous: bool = Field(default=False)
    interim_results: bool = Field(default=False)
    max_alternatives: int = Field(default=1)


class LoggingConfig(BaseModel):
    level: str = Field(default="info")  # debug|info|warning|error|critical
    to_file: bool = Field(default=False)
    file_path: str = Field(default="voicecall.log")


class AppConfig(BaseModel):
    backend: BackendConfig = Field(default_factory=BackendConfig)
    voice: VoiceConfig = Field(default_factory=VoiceConfig)
    speech_recognition: SpeechRecognitionConfig = Field(default_factory=SpeechRecognitionConfig)
    user_name: str = Field(default="User")
    ai_name: str = Field(default="Asistenqu")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Load and validate configuration from a YAML file.

    With no path, the default file is used when it exists and built-in
    defaults otherwise. An explicit path that does not exist is an error.

    Args:
        path: Path to YAML configuration file (absolute or relative to project root)

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If an explicitly named configuration file doesn't exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If a value has the wrong type
    """
    resolved = resolve_config_path(path or DEFAULT_CONFIG_PATH)
    if path is None and not os.path.exists(resolved):
        logger.info("No configuration file, using defaults", path=resolved)
        config_data = {}
    else:
        config_data = load_yaml_with_env_expansion(resolved)

    apply_backend_defaults(config_data)
    apply_language_defaults(config_data)
    apply_identity_defaults(config_data)

    normalize_languages(config_data)
    normalize_generation_bounds(config_data)

    return AppConfig(**config_data)


def validate_config(config: AppConfig) -> tuple[list[str], list[str]]:
    """Check a loaded configuration before starting a call.

    Args:
        config: AppConfig instance to validate

    Returns:
        (errors, warnings): Lists of validation errors and warnings

    Errors block startup, warnings are logged but non-blocking.
    """
    errors = []
    warnings = []

    backend = config.backend
    if not backend.base_url.startswith(("http://", "https://")):
        errors.append(f"backend.base_url must be an http(s) URL, got {backend.base_url!r}")
    if not backend.model.strip():
        errors.append("backend.model is empty")
    if backend.timeout_sec <= 0:
        errors.append(f"backend.timeout_sec must be positive, got {backend.timeout_sec}")
    if backend.max_tokens <= 0:
        errors.append(f"backend.max_tokens must be positive, got {backend.max_tokens}")
    if not TEMPERATURE_MIN <= backend.temperature <= TEMPERATURE_MAX:
        warnings.append(
            f"backend.temperature {backend.temperature} outside [{TEMPERATURE_MIN}, {TEMPERATURE_MAX}]"
        )
    if backend.history_window < 0:
        errors.append(f"backend.history_window must not be negative, got {backend.history_window}")
    if "api.openai.com" in backend.base_url:
        warnings.append("backend.base_url points at OpenAI; the client speaks the Ollama API only")

    voice = config.voice
    for name in ("rate", "pitch", "volume"):
        value = getattr(voice, name)
        if value < 0:
            errors.append(f"voice.{name} must not be negative, got {value}")
    if voice.volume > 1.0:
        warnings.append(f"voice.volume {voice.volume} above 1.0 will be clipped by most synthesizers")

    if voice.language not in SUPPORTED_LANGUAGES:
        warnings.append(f"voice.language {voice.language!r} is not supported")
    if config.speech_recognition.language != voice.language:
        warnings.append(
            f"speech_recognition.language {config.speech_recognition.language!r} "
            f"differs from voice.language {voice.language!r}"
        )

    if not config.ai_name.strip():
        errors.append("ai_name is empty")

    return errors, warnings
