"""
Structured logging setup.

Configures **structlog** on top of the stdlib ``logging`` package so that:
- events are emitted as JSON by default (or pretty console output in dev);
- request-scoped context (tenant_id, achievement_id, proof_hash) bound with
  `bind_request_context` is merged into every event;
- exceptions logged with ``exc_info`` carry a structured stack trace.

Quick start
-----------
    from achievement_proofs.logging import setup_logging, get_logger

    setup_logging()  # once, at process start
    log = get_logger(__name__)
    log.info("proof_verified", proof_hash="ab12...")

Nothing here is required for the engine to work: without `setup_logging`
structlog falls back to its default configuration.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import JSONRenderer

SERVICE_NAME = "achievement-proofs"

# Submitted proofs and signals never go to logs; only their fingerprint does.
REDACT_KEYS = {"proof", "public_signals", "witness", "secret", "api_key", "token"}


def _redact(_: logging.Logger, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for k in list(event_dict.keys()):
        if k.lower() in REDACT_KEYS and event_dict[k] is not None:
            event_dict[k] = "***"
    return event_dict


def _base_processors(service_name: str, include_stacktrace: bool) -> Iterable:
    yield structlog.stdlib.add_log_level
    yield structlog.processors.TimeStamper(fmt="iso", utc=True)
    yield merge_contextvars
    yield structlog.processors.StackInfoRenderer()
    if include_stacktrace:
        yield structlog.processors.format_exc_info
    yield _redact
    yield structlog.processors.UnicodeDecoder()

    def _ensure_service(_: logging.Logger, __: str, ev: Dict[str, Any]) -> Dict[str, Any]:
        ev.setdefault("service", service_name)
        return ev

    yield _ensure_service


def setup_logging(
    *,
    service_name: str = SERVICE_NAME,
    level: Optional[str | int] = None,
    log_format: Optional[str] = None,
    include_stacktrace: Optional[bool] = None,
) -> None:
    """
    Configure structlog + stdlib logging. Safe to call once at process start.

    ``level`` / ``log_format`` default to $LOG_LEVEL / $LOG_FORMAT, then to
    INFO / "json". Stack traces are included for JSON output by default.
    """
    level = level or os.getenv("LOG_LEVEL", "").upper() or "INFO"
    log_format = (log_format or os.getenv("LOG_FORMAT", "") or "json").lower()
    if include_stacktrace is None:
        include_stacktrace = log_format == "json"

    processors = list(_base_processors(service_name, include_stacktrace))
    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)
    else:
        renderer = JSONRenderer(sort_keys=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=[structlog.stdlib.add_log_level, structlog.stdlib.add_logger_name, *processors],
        )
    )
    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)

    logging.getLogger("asyncio").setLevel(os.getenv("LOG_LEVEL_ASYNCIO", "WARNING"))


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Return a lazy structlog logger, named after ``name`` if provided.

    Safe at import time: configuration is resolved on first use, so modules
    can create loggers before `setup_logging` runs.
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def bind_request_context(**kv: Any) -> None:
    """Bind request-scoped key/value pairs into the structlog contextvars store."""
    structlog.contextvars.bind_contextvars(**kv)


def clear_request_context(*keys: str) -> None:
    """Clear specific keys from contextvars, or clear all if no keys provided."""
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()


__all__ = [
    "SERVICE_NAME",
    "setup_logging",
    "get_logger",
    "bind_request_context",
    "clear_request_context",
]
