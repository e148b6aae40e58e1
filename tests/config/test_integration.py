"""
Integration tests for config loading.

Tests cover:
- Loading the shipped YAML configuration
- Built-in defaults when no file exists
- Environment and normalisation applied end to end
- validate_config errors and warnings
"""

import pytest
from pydantic import ValidationError

from voicecall.config import AppConfig, load_config, validate_config
from voicecall.config import schema


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('OLLAMA_BASE_URL', 'OLLAMA_MODEL', 'VOICECALL_LANGUAGE',
                 'VOICECALL_USER_NAME', 'VOICECALL_AI_NAME'):
        monkeypatch.delenv(name, raising=False)


class TestConfigLoading:

    def test_load_shipped_config(self):
        config = load_config("config/voicecall.yaml")

        assert isinstance(config, AppConfig)
        assert config.ai_name == "Asistenqu"
        assert config.backend.model == "qwen2.5:0.5b"
        assert config.backend.base_url == "http://localhost:11434"
        assert config.backend.max_tokens >= 1500
        assert config.speech_recognition.language == config.voice.language == "id-ID"

    def test_defaults_without_file(self, monkeypatch, tmp_path):
        monkeypatch.setattr(schema, "DEFAULT_CONFIG_PATH", str(tmp_path / "absent.yaml"))
        config = load_config()

        assert config.backend.base_url == "http://localhost:11434"
        assert config.backend.temperature == 0.7
        assert config.backend.max_tokens == 1500
        assert config.backend.history_window == 3
        assert config.backend.stream is False
        assert config.user_name == "User"

    def test_explicit_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "absent.yaml"))

    def test_environment_and_normalisation(self, monkeypatch, tmp_path):
        monkeypatch.setenv("OLLAMA_BASE_URL", "http://gpu-box:11434")
        monkeypatch.setenv("VOICECALL_LANGUAGE", "en_us")
        monkeypatch.setenv("VOICECALL_AI_NAME", "Nova")
        config_file = tmp_path / "voicecall.yaml"
        config_file.write_text("backend:\n  temperature: 3\n  max_tokens: 200\n")

        config = load_config(str(config_file))

        assert config.backend.base_url == "http://gpu-box:11434"
        assert config.backend.temperature == 1.2
        assert config.backend.max_tokens == 1500
        assert config.voice.language == "en-US"
        assert config.speech_recognition.language == "en-US"
        assert config.ai_name == "Nova"

    def test_wrong_type_rejected(self, tmp_path):
        config_file = tmp_path / "voicecall.yaml"
        config_file.write_text("backend:\n  stream: [1, 2]\n")
        with pytest.raises(ValidationError):
            load_config(str(config_file))


class TestValidateConfig:

    def test_defaults_are_valid(self):
        errors, warnings = validate_config(AppConfig())
        assert errors == []
        assert warnings == []

    def test_errors(self):
        config = AppConfig(
            backend={"base_url": "localhost:11434", "model": " ", "timeout_sec": 0},
            voice={"rate": -1},
            ai_name="",
        )
        errors, _ = validate_config(config)

        assert any("base_url" in error for error in errors)
        assert any("backend.model" in error for error in errors)
        assert any("timeout_sec" in error for error in errors)
        assert any("voice.rate" in error for error in errors)
        assert any("ai_name" in error for error in errors)

    def test_warnings(self):
        config = AppConfig(
            backend={"base_url": "https://api.openai.com/v1", "temperature": 5},
            voice={"language": "en-US"},
        )
        errors, warnings = validate_config(config)

        assert errors == []
        assert any("OpenAI" in warning for warning in warnings)
        assert any("temperature" in warning for warning in warnings)
        assert any("speech_recognition.language" in warning for warning in warnings)
