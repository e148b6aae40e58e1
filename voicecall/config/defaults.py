"""
Default value application for configuration.

Environment variables fill in values the YAML file leaves out. YAML values
always win (setdefault behaviour), so a deployment can pin settings in the
file and still use the environment for everything else.

Environment variables:
- OLLAMA_BASE_URL: backend.base_url
- OLLAMA_MODEL: backend.model
- VOICECALL_LANGUAGE: voice.language and speech_recognition.language
- VOICECALL_USER_NAME: user_name
- VOICECALL_AI_NAME: ai_name
"""

import os
from typing import Any, Dict


def _section(config_data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config_data.get(name) or {}
    config_data[name] = section
    return section


def apply_backend_defaults(config_data: Dict[str, Any]) -> None:
    """
    Fill backend.base_url and backend.model from the environment.

    Args:
        config_data: Configuration dictionary to modify in-place
    """
    backend = _section(config_data, 'backend')
    base_url = os.getenv('OLLAMA_BASE_URL', '').strip()
    if base_url:
        backend.setdefault('base_url', base_url)
    model = os.getenv('OLLAMA_MODEL', '').strip()
    if model:
        backend.setdefault('model', model)


def apply_language_defaults(config_data: Dict[str, Any]) -> None:
    """
    Fill voice and recognition language from VOICECALL_LANGUAGE.

    When only one of the two sections names a language, the other follows it
    so capture and playback agree.

    Args:
        config_data: Configuration dictionary to modify in-place
    """
    voice = _section(config_data, 'voice')
    recognition = _section(config_data, 'speech_recognition')
    env_language = os.getenv('VOICECALL_LANGUAGE', '').strip()
    if env_language:
        voice.setdefault('language', env_language)
        recognition.setdefault('language', env_language)
    if 'language' in voice and 'language' not in recognition:
        recognition['language'] = voice['language']
    elif 'language' in recognition and 'language' not in voice:
        voice['language'] = recognition['language']


def apply_identity_defaults(config_data: Dict[str, Any]) -> None:
    """
    Fill user_name and ai_name from the environment.

    Args:
        config_data: Configuration dictionary to modify in-place
    """
    user_name = os.getenv('VOICECALL_USER_NAME', '').strip()
    if user_name:
        config_data.setdefault('user_name', user_name)
    ai_name = os.getenv('VOICECALL_AI_NAME', '').strip()
    if ai_name:
        config_data.setdefault('ai_name', ai_name)
