"""Undo and deletion metrics for the history service."""

from opentelemetry import metrics

from .logging_config import get_logger

logger = get_logger(__name__)

meter = metrics.get_meter(__name__)

# HTTP Request Metrics
http_request_duration = meter.create_histogram(
    name="http_request_duration_seconds",
    description="Duration of HTTP requests in seconds",
    unit="s",
)

http_requests_total = meter.create_counter(
    name="http_requests_total",
    description="Total number of HTTP requests",
)

http_request_errors = meter.create_counter(
    name="http_request_errors_total",
    description="Total number of HTTP request errors",
)

# Deletion lifecycle metrics
deletions_scheduled_total = meter.create_counter(
    name="deletions_scheduled_total",
    description="Total number of deletions entering the undo window",
)

deletions_undone_total = meter.create_counter(
    name="deletions_undone_total",
    description="Total number of deletions recovered by undo",
)

deletions_committed_total = meter.create_counter(
    name="deletions_committed_total",
    description="Total number of deletions written to the store",
)

deletion_commit_failures_total = meter.create_counter(
    name="deletion_commit_failures_total",
    description="Total number of failed permanent deletions",
)

restores_broadcast_total = meter.create_counter(
    name="restores_broadcast_total",
    description="Total number of restore broadcasts sent to registered views",
)

deletion_commit_duration = meter.create_histogram(
    name="deletion_commit_duration_seconds",
    description="Duration of permanent deletions in seconds",
    unit="s",
)

# Current state metrics
pending_deletions = meter.create_up_down_counter(
    name="pending_deletions",
    description="Number of deletions currently inside the undo window",
)


def record_http_request(method: str, endpoint: str, status_code: int, duration: float):
    """Record HTTP request metrics."""
    labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}

    http_request_duration.record(duration, labels)
    http_requests_total.add(1, labels)

    if status_code >= 400:
        http_request_errors.add(1, labels)


def record_deletion_scheduled(superseded: bool):
    """Record a deletion entering the undo window."""
    deletions_scheduled_total.add(1, {"superseded": str(superseded).lower()})


def record_pending_changed(delta: int):
    """Track the occupancy of the pending slot."""
    pending_deletions.add(delta)


def record_deletion_undone():
    """Record a deletion recovered by undo."""
    deletions_undone_total.add(1)


def record_deletion_commit(succeeded: bool, duration: float, reason: str):
    """Record the outcome of a permanent deletion."""
    labels = {"reason": reason}
    deletion_commit_duration.record(duration, labels)
    if succeeded:
        deletions_committed_total.add(1, labels)
    else:
        deletion_commit_failures_total.add(1, labels)


def record_restore_broadcast(handler_count: int, reason: str):
    """Record a restore broadcast."""
    restores_broadcast_total.add(1, {"reason": reason, "handlers": str(handler_count)})


logger.debug("Deletion metrics instruments created")
