"""Logging configuration for the face greeter kiosk."""
import logging
import sys
from typing import Dict, List

import structlog
from structlog.stdlib import ProcessorFormatter

from app.core.config import settings

# Third-party loggers that drown out the kiosk's own events at INFO.
# The playback endpoint is polled continuously, so uvicorn access logs are
# disabled outright instead.
LIBRARY_LOG_LEVELS: Dict[str, int] = {
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "insightface": logging.WARNING,
    "onnxruntime": logging.ERROR,
}


def _add_service_name(_, __, event_dict):
    event_dict.setdefault("service", settings.PROJECT_NAME)
    return event_dict


def _renderer(processors: List[structlog.types.Processor]) -> structlog.types.Processor:
    if settings.ENVIRONMENT == "development":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    # JSON output has no traceback pretty-printer, so format it into the event
    processors.insert(-1, structlog.processors.format_exc_info)
    return structlog.processors.JSONRenderer()


def setup_logging() -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Development gets the console renderer, every other environment emits
    one JSON object per line so kiosk logs can be shipped as-is.
    """
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        ProcessorFormatter.wrap_for_formatter,
    ]
    renderer = _renderer(processors)

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ProcessorFormatter(processor=renderer))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    logging.getLogger("uvicorn.error").propagate = False
    logging.getLogger("uvicorn.access").disabled = True
    for name, level in LIBRARY_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(level)

    get_logger(__name__).info(
        "Logging configured",
        environment=settings.ENVIRONMENT,
        level=settings.LOG_LEVEL,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance compatible with standard logging.

    Args:
        name: Name for the logger, typically __name__

    Returns:
        structlog.stdlib.BoundLogger: Configured logger instance
    """
    return structlog.get_logger(name)
