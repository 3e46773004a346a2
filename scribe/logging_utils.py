from typing import Any

from fastapi import Request

from .logging_config import get_logger

api_logger = get_logger("scribe.api")
db_logger = get_logger("scribe.database")
system_logger = get_logger("scribe.system")


def _level_for_status(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "info"


def log_api_request(request: Request, status_code: int, duration_ms: float) -> None:
    """Log one handled HTTP request.

    Server errors log at error level, client errors at warning level.
    """
    log = getattr(api_logger, _level_for_status(status_code))
    log(
        "Request handled",
        method=request.method,
        path=request.url.path,
        status_code=status_code,
        duration_ms=round(duration_ms, 2),
        client_ip=request.client.host if request.client else None,
    )


def log_database_operation(
    operation: str, table: str, success: bool = True, **context: Any
) -> None:
    """Log a write against the history table.

    Args:
        operation: "create" or "delete"
        table: Table name being written
        success: Whether the write went through
        **context: Extra fields such as the transcription id
    """
    if success:
        db_logger.info("Database write", operation=operation, table=table, **context)
    else:
        db_logger.error(
            "Database write failed", operation=operation, table=table, **context
        )


def log_system_info(app_name: str, database_url: str, undo_timeout_ms: int) -> None:
    system_logger.info(
        "Application startup",
        app_name=app_name,
        database_url=database_url,
        undo_timeout_ms=undo_timeout_ms,
    )
