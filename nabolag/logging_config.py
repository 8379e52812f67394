"""
Structured JSON logging for lifecycle job observability.

Provides structured logging with trace IDs for correlating logs across
a single prune/drain run, plus context managers for job stages and
object-storage batch operations.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variables for trace correlation
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
stage_var: ContextVar[str | None] = ContextVar("stage", default=None)


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "trace_id": "...", ...}
    """

    EXTRA_FIELDS = (
        "event",
        "duration_ms",
        "items_processed",
        "items_failed",
        "operation",
        "namespace",
        "count",
        "post_id",
        "dry_run",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add trace context if available
        trace_id = trace_id_var.get()
        if trace_id:
            log_data["trace_id"] = trace_id

        stage = stage_var.get()
        if stage:
            log_data["stage"] = stage

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields from record
        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """
    Configure logging for production or local development.

    Args:
        json_format: If True, use JSON format. If False, use human-readable format.
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def log_stage(stage: str, trace_id: str | None = None):
    """
    Context manager for job-level logging.

    Logs stage start and end with duration.

    Usage:
        with log_stage("prune", trace_id=run_id):
            # ... job logic ...
    """
    trace_token = trace_id_var.set(trace_id) if trace_id else None
    stage_token = stage_var.set(stage)

    start_time = time.time()
    logger = logging.getLogger("lifecycle")

    logger.info(f"Stage {stage} started", extra={"event": "stage_start"})

    try:
        yield
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Stage {stage} completed",
            extra={"event": "stage_complete", "duration_ms": duration_ms},
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"Stage {stage} failed: {e}",
            extra={"event": "stage_failed", "duration_ms": duration_ms},
            exc_info=True,
        )
        raise
    finally:
        stage_var.reset(stage_token)
        if trace_token is not None:
            trace_id_var.reset(trace_token)


@contextmanager
def log_storage_operation(operation: str, namespace: str, count: int):
    """
    Context manager for object-storage batch instrumentation.

    Usage:
        with log_storage_operation("remove", "opslagsbilleder", len(paths)) as metrics:
            removed = storage.remove("opslagsbilleder", paths)
            metrics["items_processed"] = len(removed)
    """
    start_time = time.time()
    logger = logging.getLogger("lifecycle.storage")
    metrics: dict = {"items_processed": 0}

    try:
        yield metrics

        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"Storage {operation} completed: {namespace} "
            f"({metrics['items_processed']}/{count} objects, {duration_ms}ms)",
            extra={
                "event": f"storage_{operation}_complete",
                "operation": operation,
                "namespace": namespace,
                "count": count,
                "items_processed": metrics["items_processed"],
                "duration_ms": duration_ms,
            },
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"Storage {operation} failed: {namespace} ({count} objects) - {e}",
            extra={
                "event": f"storage_{operation}_failed",
                "operation": operation,
                "namespace": namespace,
                "count": count,
                "duration_ms": duration_ms,
            },
        )
        raise
