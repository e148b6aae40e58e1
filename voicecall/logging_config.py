"""
Structured Logging Configuration

This module configures structured logging using the 'structlog' library.
It sets up processors for adding timestamps, log levels, the active call id,
and renders logs in colorized console (default) or JSON format based on env.
"""

import os
import logging
import sys
import contextvars
import uuid
import time

import structlog
from structlog import dev as structlog_dev
from logging.handlers import RotatingFileHandler

# Context variable for the active call id
call_id_var = contextvars.ContextVar('call_id', default=None)

# Event keys that carry model or user text; kept short in logs
TEXT_KEYS = {'raw', 'prompt', 'text', 'response', 'transcript', 'cleaned'}
TEXT_PREVIEW_CHARS = 120

SENSITIVE_KEYS = {'api_key', 'apikey', 'token', 'authorization', 'password', 'secret'}


def get_call_id():
    """Get the current call id."""
    return call_id_var.get()


def set_call_id(value=None):
    """Set the call id, generating one when not given."""
    if value is None:
        value = uuid.uuid4().hex[:12]
    call_id_var.set(value)
    return value


def add_call_id(logger, method_name, event_dict):
    """Add the active call id to the log record."""
    call_id = get_call_id()
    if call_id and 'call_id' not in event_dict:
        event_dict['call_id'] = call_id
    return event_dict


def add_service_context(logger, method_name, event_dict):
    """Add service and component names to the log record."""
    event_dict['service'] = 'voicecall'
    component = event_dict.get('logger')
    if not component:
        component = getattr(getattr(logger, 'logger', None), 'name', None) or 'unknown'
    event_dict['component'] = component
    return event_dict


def clip_text_fields(logger, method_name, event_dict):
    """
    Keep model and transcript text readable in logs.

    Values under TEXT_KEYS longer than TEXT_PREVIEW_CHARS are cut to a preview
    with the original length appended. Credential-like keys are redacted.
    """
    for key, value in list(event_dict.items()):
        normalized = str(key).lower().replace('-', '_')
        if normalized in SENSITIVE_KEYS or normalized.endswith('_key'):
            if isinstance(value, str) and value:
                event_dict[key] = '***REDACTED***'
            continue
        if normalized in TEXT_KEYS and isinstance(value, str) and len(value) > TEXT_PREVIEW_CHARS:
            event_dict[key] = f"{value[:TEXT_PREVIEW_CHARS]}… ({len(value)} chars)"
    return event_dict


def configure_logging(log_level="INFO", log_to_file=False, log_file_path="voicecall.log"):
    """
    Set up structured logging.

    Environment overrides (optional):
      - LOG_LEVEL: debug|info|warning|error|critical (default: INFO)
      - LOG_FORMAT: json|console (default: console)
      - LOG_COLOR:  0|1 (console only; default: 1)
      - LOG_TO_FILE: 0|1 (default: 0)
      - LOG_FILE_PATH: path (default: voicecall.log)
    """
    env_level = os.getenv("LOG_LEVEL")
    if env_level:
        log_level = env_level.upper()
    if os.getenv("LOG_TO_FILE") is not None:
        log_to_file = os.getenv("LOG_TO_FILE", "0").strip() in ("1", "true", "True")
    log_file_path = os.getenv("LOG_FILE_PATH", log_file_path)
    log_format = os.getenv("LOG_FORMAT", "console").strip().lower()
    log_color = os.getenv("LOG_COLOR", "1").strip() not in ("0", "false", "False")

    log_level_upper = log_level.upper() if isinstance(log_level, str) else str(log_level)
    show_tracebacks = (log_level_upper == "DEBUG")

    def suppress_exc_info_if_disabled(logger, method_name, event_dict):
        """Remove exc_info from event when tracebacks are disabled by policy."""
        if not show_tracebacks and event_dict.get("exc_info"):
            event_dict.pop("exc_info", None)
        return event_dict

    level_value = getattr(logging, log_level_upper, logging.INFO) if isinstance(log_level, str) else int(log_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_context,
            add_call_id,
            clip_text_fields,
            suppress_exc_info_if_disabled,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog_dev.ConsoleRenderer(colors=log_color) if log_format == "console" else structlog.processors.JSONRenderer()

    processor_formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level_value)

    # Console output goes to stderr so stdout stays free for the spoken text
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(processor_formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        path = log_file_path
        if "{ts}" in path:
            path = path.replace("{ts}", time.strftime("%Y%m%d-%H%M%S"))
        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            file_handler = RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=3)
            file_handler.setFormatter(processor_formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            get_logger(__name__).warning(
                "File logging disabled; continuing with console only",
                error=str(e),
                configured_path=log_file_path,
            )

    # Reduce noisy third-party loggers
    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)


def get_logger(name: str):
    """Get a structlog logger."""
    return structlog.get_logger(name)
