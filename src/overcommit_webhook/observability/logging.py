"""
Structured logging for the overcommit webhook.

One admission review produces a handful of log lines (decode, scope decision,
per-container adjustments, summary). They share a correlation ID: the
AdmissionReview request UID once it is known, a short random ID before that.
Records carry admission fields passed through ``extra=`` which the JSON
formatter lifts to top-level keys.
"""

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime

# Per-review correlation ID; aiohttp runs each request in its own task context
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

# Health check and scrape endpoints, hit every few seconds by kubelet and Prometheus
HEALTH_CHECK_PATHS = frozenset({"/healthz", "/ready", "/metrics"})

# Admission fields lifted from ``extra=`` into JSON output
STRUCTURED_FIELDS = (
    "admission_uid",
    "resource_name",
    "namespace",
    "operation",
    "dry_run",
    "outcome",
    "duration",
    "error_type",
    "patch_operations",
)


class HealthCheckFilter(logging.Filter):
    """Drops access-log lines for health check and scrape endpoints."""

    def __init__(self, suppress_health_logs: bool = True):
        super().__init__()
        self.suppress_health_logs = suppress_health_logs

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.suppress_health_logs:
            return True
        message = record.getMessage()
        return not any(path in message for path in HEALTH_CHECK_PATHS)


class CorrelationIDFilter(logging.Filter):
    """Stamps every record with the current review's correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or set_correlation_id(
            generate_correlation_id()
        )
        return True


class StructuredFormatter(logging.Formatter):
    """Renders records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", ""),
        }
        log_data.update(
            (name, getattr(record, name))
            for name in STRUCTURED_FIELDS
            if hasattr(record, name)
        )
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def generate_correlation_id() -> str:
    """Short random ID for lines logged before a request UID is known."""
    return uuid.uuid4().hex[:8]


def set_correlation_id(corr_id: str) -> str:
    """Bind ``corr_id`` to the current context and return it."""
    correlation_id.set(corr_id)
    return corr_id


def setup_structured_logging(
    log_level: str = "INFO",
    enable_json_formatting: bool = True,
    correlation_id_enabled: bool = True,
    log_health_checks: bool = False,
) -> None:
    """
    Replace root handlers with a single stderr handler.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        enable_json_formatting: Emit JSON instead of plain text
        correlation_id_enabled: Attach the review correlation ID to each record
        log_health_checks: Keep access-log lines for health check endpoints
    """
    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)

    if enable_json_formatting:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        prefix = "%(asctime)s - %(correlation_id)s" if correlation_id_enabled else "%(asctime)s"
        formatter = logging.Formatter(f"{prefix} - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    if correlation_id_enabled:
        handler.addFilter(CorrelationIDFilter())
    if not log_health_checks:
        handler.addFilter(HealthCheckFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Client and server libraries are chatty at INFO
    for noisy in ("kubernetes", "urllib3", "aiohttp.access", "aiohttp.server", "aiohttp.web"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
