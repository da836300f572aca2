"""
Structured logging configuration using structlog.
Outputs JSON in production, pretty-printed in development.
Includes request ID tracking and an optional bounded in-memory log buffer.
"""

import logging
import sys
from collections import deque
from typing import Optional

import structlog
from app.core.config import get_settings


class LogBuffer:
    """
    Fixed-capacity ring buffer of recent log entries.

    Installed as a structlog processor when LOG_BUFFER_SIZE > 0. Once full,
    the oldest entry is evicted for every new one.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("LogBuffer capacity must be positive")
        self.capacity = capacity
        self._entries: deque = deque(maxlen=capacity)

    def __call__(self, logger, method_name: str, event_dict: dict) -> dict:
        self._entries.append({k: v for k, v in event_dict.items() if not k.startswith("_")})
        return event_dict

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self, limit: Optional[int] = None) -> list[dict]:
        items = list(self._entries)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def clear(self) -> None:
        self._entries.clear()


def setup_logging(log_buffer: Optional[LogBuffer] = None) -> None:
    settings = get_settings()

    # Shared processors for all environments
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_buffer is not None:
        shared_processors.append(log_buffer)

    if settings.ENVIRONMENT == "production":
        # JSON output for production (machine-parseable)
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        # Pretty console output for development
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ]
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Silence noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
