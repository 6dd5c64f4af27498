from __future__ import annotations

import logging
import re
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

# The bot token is part of every Bot API URL, so httpx errors carry it.
_URL_TOKEN_RE = re.compile(r"bot\d+:[A-Za-z0-9_-]+")
_BARE_TOKEN_RE = re.compile(r"\b\d+:[A-Za-z0-9_-]{10,}\b")

_QUIET_LOGGERS = ("httpx", "httpcore")


def redact_token(text: str) -> str:
    text = _URL_TOKEN_RE.sub("bot[REDACTED]", text)
    return _BARE_TOKEN_RE.sub("[REDACTED_TOKEN]", text)


def redact_token_processor(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact_token(value)
    return event_dict


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def setup_logging(*, debug: bool = False) -> None:
    """Route structlog events through stdlib logging on stdout.

    Debug mode renders colored console lines; otherwise each event is one
    JSON object.
    """
    renderer = (
        structlog.dev.ConsoleRenderer(colors=True)
        if debug
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.processors.format_exc_info,
            redact_token_processor,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
