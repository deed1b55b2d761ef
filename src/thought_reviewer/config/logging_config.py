"""Logging configuration module with structured logging for review cycles."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import Any, Dict, Optional, Union

from loguru import logger


VALID_LEVELS: frozenset[str] = frozenset(
    {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
)

CONSOLE_FORMAT: str = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)
FILE_FORMAT: str = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message} | {extra}"


@dataclass(frozen=True)
class LoggingConfig:
    """Where review logs go and how much of them is kept."""

    log_file: Path = Path("logs/thoughts.log")
    log_level: str = "INFO"
    rotation: str = "5 MB"
    retention: int = 8
    compression: str = "zip"

    console_enabled: bool = True
    console_level: str = "INFO"

    # Cycles slower than this are logged as warnings
    slow_cycle_threshold_seconds: float = 30.0

    # Sinks write from a background thread when True
    enqueue: bool = True

    def __post_init__(self) -> None:
        for name, level in (("log level", self.log_level), ("console log level", self.console_level)):
            if level.upper() not in VALID_LEVELS:
                raise ValueError(f"Invalid {name}: {level}")
        if self.retention < 1:
            raise ValueError("Retention must keep at least one file")
        if self.slow_cycle_threshold_seconds <= 0:
            raise ValueError("Slow cycle threshold must be positive")


class StructuredLogger:
    """Loguru wrapper that attaches structured fields to queue and delivery events.

    Creating one replaces every loguru sink with the configured console and
    file sinks, so there should be one per process.
    """

    def __init__(self, config: LoggingConfig) -> None:
        self.config: LoggingConfig = config
        self._install_sinks()

    def _install_sinks(self) -> None:
        logger.remove()

        if self.config.console_enabled:
            logger.add(
                sys.stderr,
                level=self.config.console_level.upper(),
                format=CONSOLE_FORMAT,
                colorize=True,
                enqueue=self.config.enqueue
            )

        logger.add(
            str(self.config.log_file),
            level=self.config.log_level.upper(),
            format=FILE_FORMAT,
            rotation=self.config.rotation,
            retention=self.config.retention,
            compression=self.config.compression,
            enqueue=self.config.enqueue
        )

    def log_operation_start(self, operation: str, **context: Any) -> str:
        """Log that ``operation`` began and return an id for matching its end."""
        operation_id: str = f"{operation}_{datetime.now():%Y%m%d_%H%M%S_%f}"
        logger.bind(operation_id=operation_id, operation=operation, **context).info(
            f"Operation started: {operation}"
        )
        return operation_id

    def log_operation_end(
        self,
        operation_id: str,
        operation: str,
        error: Optional[BaseException] = None,
        **context: Any
    ) -> None:
        """Log the end of an operation; a non-None ``error`` marks it failed."""
        bound = logger.bind(operation_id=operation_id, operation=operation, success=error is None, **context)

        if error is None:
            bound.success(f"Operation completed: {operation}")
        else:
            bound.bind(error_type=type(error).__name__, error_message=str(error)).error(
                f"Operation failed: {operation}"
            )

    def log_performance_metric(
        self,
        metric_name: str,
        value: Union[int, float],
        unit: str = "",
        **context: Any
    ) -> None:
        """Log a metric, warning when a duration ran past the slow threshold."""
        suffix: str = f" {unit}" if unit else ""
        logger.bind(metric_name=metric_name, metric_value=value, metric_unit=unit, **context).info(
            f"Performance metric: {metric_name}={value}{suffix}"
        )

        threshold: float = self.config.slow_cycle_threshold_seconds
        if metric_name.endswith("_duration_seconds") and value > threshold:
            logger.bind(threshold_seconds=threshold, **context).warning(
                f"Slow operation detected: {metric_name} took {value:.1f}s"
            )

    def log_claim(self, claimed: int, **context: Any) -> None:
        """Log how many thoughts a cycle claimed from the queue."""
        logger.bind(db_operation="CLAIM", db_table="thoughts", db_affected_rows=claimed, **context).info(
            f"Claimed {claimed} thoughts from the review queue"
        )

    def log_delivery(
        self,
        channel: str,
        success: bool,
        notes_count: int = 0,
        error: Optional[str] = None,
        **context: Any
    ) -> None:
        """Log a digest or analysis delivery attempt.

        Args:
            channel: Which consumer was called ("digest", "analysis").
            success: Whether the call succeeded.
            notes_count: Number of thoughts handed over.
            error: Error message if failed.
            **context: Additional context data.
        """
        bound = logger.bind(
            delivery_channel=channel,
            delivery_success=success,
            delivery_notes_count=notes_count,
            delivery_error=error,
            **context
        )
        if success:
            bound.info(f"Delivery succeeded: {channel} ({notes_count} thoughts)")
        else:
            bound.error(f"Delivery failed: {channel} ({notes_count} thoughts): {error}")


def setup_logging(config: Optional[LoggingConfig] = None) -> StructuredLogger:
    """Create the log directory and install the configured sinks.

    Args:
        config: Logging configuration. Defaults to ``LoggingConfig()``.

    Returns:
        The StructuredLogger that owns the sinks.
    """
    config = config or LoggingConfig()
    config.log_file.parent.mkdir(parents=True, exist_ok=True)

    structured_logger: StructuredLogger = StructuredLogger(config)
    logger.bind(log_file=str(config.log_file), log_level=config.log_level).debug("Logging system initialized")
    return structured_logger


class LoggedOperation:
    """Times the enclosed block and logs its start, duration and outcome."""

    def __init__(self, structured_logger: StructuredLogger, operation_name: str, **context: Any) -> None:
        self.structured_logger: StructuredLogger = structured_logger
        self.operation_name: str = operation_name
        self.context: Dict[str, Any] = context
        self.operation_id: str = ""
        self.start_time: datetime = datetime.now()

    def __enter__(self) -> LoggedOperation:
        self.start_time = datetime.now()
        self.operation_id = self.structured_logger.log_operation_start(self.operation_name, **self.context)
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        _: Optional[TracebackType]
    ) -> None:
        duration_seconds: float = (datetime.now() - self.start_time).total_seconds()

        self.structured_logger.log_performance_metric(
            f"{self.operation_name}_duration_seconds",
            duration_seconds,
            "seconds",
            operation_id=self.operation_id
        )
        self.structured_logger.log_operation_end(
            self.operation_id,
            self.operation_name,
            error=exc_val,
            duration_seconds=duration_seconds,
            **self.context
        )
