from __future__ import annotations

"""
Structured logging for Proof Services.

structlog renders every record (ours, uvicorn's, httpx's) as JSON, or with
the console renderer when ``LOG_FORMAT=console``. Job context bound through
``bind_job_context`` is merged into each event; ``job`` and ``program_hash``
are always present (None outside a job) so log lines share one shape.

    setup_logging(level="INFO", log_format="json")
    log = get_logger(__name__)
    log.info("fetch.verified", bytes=1024)
"""

import logging
from typing import Any, Dict, List, Optional

import structlog
from structlog.contextvars import merge_contextvars

JOB_FIELDS = ("job", "program_hash")
QUIET_LOGGERS = ("asyncio", "httpcore", "httpx")


def _job_fields(_: Any, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key in JOB_FIELDS:
        event_dict.setdefault(key, None)
    return event_dict


def _shared_processors(service_name: str) -> List[Any]:
    def _service(_: Any, __: str, ev: Dict[str, Any]) -> Dict[str, Any]:
        ev.setdefault("service", service_name)
        return ev

    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        merge_contextvars,
        _job_fields,
        _service,
        structlog.processors.format_exc_info,
    ]


def setup_logging(
    *,
    service_name: str = "proof-services",
    level: str | int = "INFO",
    log_format: str = "json",
) -> None:
    """Configure structlog and route stdlib loggers through the same renderer."""
    shared = _shared_processors(service_name)
    if log_format.lower() == "console":
        renderer: Any = structlog.dev.ConsoleRenderer(colors=True, sort_keys=False)
    else:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)

    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, *shared, renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = [handler]
        lg.propagate = False
        lg.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    # lazy proxy: resolves against whatever setup_logging() configured last
    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_job_context(**kv: Any) -> None:
    structlog.contextvars.bind_contextvars(**kv)


def clear_job_context(*keys: str) -> None:
    """Unbind ``keys``, or the whole job context when none are given."""
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()


__all__ = [
    "setup_logging",
    "get_logger",
    "bind_job_context",
    "clear_job_context",
]
