"""Structured logging configuration using structlog."""

import logging
import re
import sys
from pathlib import Path
from typing import Any

import structlog

LOG_DIR = Path(__file__).parent.parent.parent / "logs"
APP_LOG_FILE = LOG_DIR / "app.log"
ERROR_LOG_FILE = LOG_DIR / "error.log"

# Credentials and addresses that must never reach log sinks verbatim
SENSITIVE_PATTERNS = {
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b"),
    "jwt": re.compile(r"\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\b"),
    "session_token": re.compile(r"\btok_[A-Za-z0-9_-]{8,}\b"),
    "bearer": re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/=-]+"),
}

_MASKING_ENABLED = True


def mask_sensitive(message: str) -> str:
    """Mask e-mail addresses and bearer credentials in a string.

    E-mails keep their domain (``***@example.com``); tokens are fully replaced.
    """
    masked = SENSITIVE_PATTERNS["email"].sub(lambda m: f"***@{m.group(1)}", message)
    masked = SENSITIVE_PATTERNS["bearer"].sub("Bearer ***", masked)
    masked = SENSITIVE_PATTERNS["jwt"].sub("***", masked)
    return SENSITIVE_PATTERNS["session_token"].sub("tok_***", masked)


def _mask_value(value: Any) -> Any:
    if isinstance(value, str):
        return mask_sensitive(value)
    if isinstance(value, dict):
        return {k: _mask_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_mask_value(v) for v in value)
    return value


def mask_sensitive_processor(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor applying :func:`mask_sensitive` to every field."""
    if not _MASKING_ENABLED:
        return event_dict
    return {key: _mask_value(value) for key, value in event_dict.items()}


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    log_to_file: bool = False,
    mask_sensitive_data: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, output JSON format; otherwise, console-friendly format
        log_to_file: If True, also write logs under ``logs/``
        mask_sensitive_data: Mask e-mails and tokens in every log event
    """
    global _MASKING_ENABLED
    _MASKING_ENABLED = mask_sensitive_data

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    if log_to_file:
        LOG_DIR.mkdir(exist_ok=True)
        file_format = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        app_handler = logging.FileHandler(APP_LOG_FILE, encoding="utf-8")
        app_handler.setFormatter(file_format)
        root_logger.addHandler(app_handler)

        error_handler = logging.FileHandler(ERROR_LOG_FILE, encoding="utf-8")
        error_handler.setFormatter(file_format)
        error_handler.setLevel(logging.ERROR)
        root_logger.addHandler(error_handler)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        mask_sensitive_processor,
    ]

    if json_format:
        processors_list = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors_list = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors_list,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a configured logger instance."""
    return structlog.get_logger(name)
