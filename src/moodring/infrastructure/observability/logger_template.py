"""Shared logger helpers so every module logs the same way.

USAGE:
    logger = logging.getLogger(__name__)

    async with log_operation(logger, "session.login"):
        await gateway.exchange_code(code, verifier)

    log_worker_health(logger, "activity_poller", cycles_completed=10, errors_total=0,
                      uptime_seconds=300)
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any


# Logs {operation}.started / .completed / .failed with duration_ms. Re-raises on failure,
# so it never changes control flow - it only adds the log lines around it.
@asynccontextmanager
async def log_operation(
    logger: logging.Logger,
    operation: str,
    **context: Any,
) -> AsyncIterator[None]:
    """Context manager for logging operation start/end with automatic timing.

    Args:
        logger: Logger instance
        operation: Operation name (e.g. "session.login")
        **context: Extra fields added to every line
    """
    start = time.monotonic()
    logger.debug(f"{operation}.started", extra=context)
    try:
        yield
    except Exception as e:
        logger.error(
            f"{operation}.failed",
            extra={
                **context,
                "duration_ms": int((time.monotonic() - start) * 1000),
                "error": str(e),
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise
    logger.info(
        f"{operation}.completed",
        extra={**context, "duration_ms": int((time.monotonic() - start) * 1000)},
    )


def log_worker_health(
    logger: logging.Logger,
    worker_name: str,
    cycles_completed: int,
    errors_total: int,
    uptime_seconds: float,
    extra_stats: dict[str, Any] | None = None,
) -> None:
    """Log worker health status in one consistent shape.

    Args:
        logger: Logger instance
        worker_name: Worker identifier (e.g. "activity_poller")
        cycles_completed: Ticks completed since start
        errors_total: Ticks that raised an unexpected exception since start
            (skipped ticks and ticks with no data are not errors)
        uptime_seconds: Seconds since the worker started
        extra_stats: Additional fields to include
    """
    log_data: dict[str, Any] = {
        "worker": worker_name,
        "cycles_completed": cycles_completed,
        "errors_total": errors_total,
        "uptime_seconds": int(uptime_seconds),
    }
    if extra_stats:
        log_data.update(extra_stats)

    logger.info("worker.health", extra=log_data)
