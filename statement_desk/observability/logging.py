"""
Structured logging for the statement service.

structlog renders JSON lines in production and a coloured console when
DEBUG is on. Statement text ends up in log context now and then (warnings,
unparsed lines), so long digit runs are masked before rendering.
"""

import logging
import re
import sys
from contextlib import contextmanager
from typing import Optional

import structlog

from statement_desk.config import settings

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("uvicorn.access", "pdfminer", "httpx", "rq.worker")

# Account and card numbers: 8+ digits, optionally grouped by spaces or dashes
_LONG_NUMBER = re.compile(r"\b\d(?:[ -]?\d){7,}\b")


def _mask_number(match: re.Match) -> str:
    digits = re.sub(r"\D", "", match.group(0))
    return "****" + digits[-4:]


def mask_account_numbers(logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor: replace account and card numbers with ****NNNN."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _LONG_NUMBER.sub(_mask_number, value)
    return event_dict


@contextmanager
def parse_context(user_id: Optional[str] = None, source_file: Optional[str] = None):
    """Bind caller attribution to every log line emitted during one parse."""
    bound = {k: v for k, v in (("user_id", user_id), ("source_file", source_file)) if v}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def setup_logging() -> None:
    """Configure structlog and route stdlib logging through it."""

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        mask_account_numbers,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = structlog.dev.ConsoleRenderer() if settings.DEBUG else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
