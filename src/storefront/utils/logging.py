"""Structured logging for the storefront.

Standard library logging carries the output (console plus rotating files under
``LOG_DIR``); structlog shapes every record. Production and staging render
JSON lines, everything else renders for the console. Customer contact details
(emails and phone numbers) are masked before any record is rendered.
"""

import logging
import logging.handlers
import os
import re
import sys
from pathlib import Path
from typing import Any

import structlog

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_QUIET_LIBRARIES = ("urllib3", "asyncio", "protean", "uvicorn.access")

_CONTACT_KEYS = {"recipient", "customer_email", "email", "email_address", "phone"}
_EMAIL = re.compile(r"^([^@\s]{1,2})[^@\s]*(@.+)$")

_MAX_BYTES = 10 * 1024 * 1024
_BACKUPS = 5


def current_environment() -> str:
    return (os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", _LEVELS.get(current_environment(), "INFO"))


def mask_contact(value: str) -> str:
    """``wanjiku@example.com`` -> ``wa***@example.com``; phones keep their last three digits."""
    match = _EMAIL.match(value)
    if match:
        return f"{match.group(1)}***{match.group(2)}"
    return f"***{value[-3:]}" if len(value) > 3 else "***"


def mask_customer_contacts(_, __, event_dict: dict) -> dict:
    """structlog processor hiding customer emails and phone numbers."""
    for key in _CONTACT_KEYS & event_dict.keys():
        if isinstance(event_dict[key], str):
            event_dict[key] = mask_contact(event_dict[key])
    return event_dict


def _rotating_file(path: Path, level) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging() -> None:
    level = get_log_level()
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(exist_ok=True)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [
        console,
        _rotating_file(log_dir / "storefront.log", level),
        _rotating_file(log_dir / "storefront_error.log", logging.ERROR),
    ]

    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def _renderer(environment: str):
    if environment in ("production", "staging"):
        return structlog.processors.JSONRenderer()

    return structlog.dev.ConsoleRenderer(
        colors=environment != "test",
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=True, max_frames=2),
    )


def setup_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            ),
            mask_customer_contacts,
            _renderer(current_environment()),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging() -> None:
    setup_stdlib_logging()
    setup_structlog()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request(path: str, user_id: str | None = None, session_id: str | None = None, **extra: Any) -> None:
    """Start a fresh log context for one HTTP request, tagged with its caller."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(path=path, user_id=user_id, session_id=session_id, **extra)
