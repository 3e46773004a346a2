import logging
from pathlib import Path

import structlog
from opentelemetry import trace
from rich.logging import RichHandler

from .config import settings

LOG_DIR = Path("logs")
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

# Libraries that log too much at the application's level
QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "asyncio": logging.WARNING,
    "uvicorn.access": logging.WARNING,  # requests are logged by our middleware
}


def _resolve_level(log_level: str | None) -> int:
    if log_level:
        return logging.getLevelNamesMapping().get(log_level.upper(), logging.INFO)
    return logging.DEBUG if settings.debug else logging.INFO


def setup_logging(log_level: str | None = None) -> None:
    """Route stdlib logging through Rich and configure structlog.

    Args:
        log_level: Level name overriding the one derived from settings
    """
    level = _resolve_level(log_level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers: list[logging.Handler] = [
        RichHandler(rich_tracebacks=True, show_path=settings.debug, show_time=False)
    ]
    if settings.is_production or settings.log_to_file:
        LOG_DIR.mkdir(exist_ok=True)
        handlers.append(logging.FileHandler(LOG_DIR / "scribe.log", encoding="utf-8"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    _configure_structlog(level)
    get_logger(__name__).info(
        "Logging configured",
        level=logging.getLevelName(level),
        file_logging=len(handlers) > 1,
    )


def _add_trace_context(logger, method_name, event_dict):
    """Attach the active OpenTelemetry trace and span ids."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict["trace_id"] = format(span_context.trace_id, "032x")
        event_dict["span_id"] = format(span_context.span_id, "016x")
    return event_dict


def _configure_structlog(level: int) -> None:
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _add_trace_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if settings.is_development:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.WriteLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
