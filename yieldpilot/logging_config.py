"""
Structured logging configuration using structlog.

Every module logs through ``logging.getLogger(__name__)``; those records are
rendered by structlog so they carry the same timestamp, level and bound
context (``request_id`` from the HTTP middleware, ``intent`` from the
workflow) as native structlog events. JSON lines by default, colored console
output at DEBUG.
"""

import logging
import sys
from typing import Any, MutableMapping, Optional

import structlog

from .config import settings

# selector + two words; anything longer is router or venue calldata
MAX_HEX_CHARS = 2 + 8 + 2 * 64


def truncate_calldata(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Shorten long ``0x`` strings so router calldata does not flood the logs."""
    for key, value in event_dict.items():
        if isinstance(value, str) and value.startswith("0x") and len(value) > MAX_HEX_CHARS:
            event_dict[key] = f"{value[:MAX_HEX_CHARS]}...({(len(value) - 2) // 2} bytes)"
    return event_dict


def setup_logging(log_level: Optional[str] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override log level (default: from settings.log_level)
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    is_dev = level == logging.DEBUG

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        truncate_calldata,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if is_dev:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain gives stdlib records the same context as structlog events
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Client libraries log every request at INFO
    for name in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
