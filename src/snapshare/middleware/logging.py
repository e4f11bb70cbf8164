"""
structlog setup shared by the API and the maintenance worker.

Event names are snake_case (``otp_issued``, ``engagement_created``) with
keyword fields. Secrets are masked before rendering.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

from snapshare.config import Settings

# Event fields that must never reach the log sink in clear text
REDACTED_FIELDS = frozenset({"password", "new_password", "otp", "raw_code", "token", "access_token"})


def redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:  # noqa: ANN401
    for key in REDACTED_FIELDS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def setup_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging with a JSON (prod) or console (dev) renderer."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: structlog.types.Processor
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)
    # SQL echo and connection chatter stay out of the application log
    for noisy in ("sqlalchemy.engine", "aiosqlite", "httpx"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
