"""Configuration package for thought review scheduler.

Settings live in ``config.settings`` and are imported from there directly.
"""

from .logging_config import LoggedOperation, LoggingConfig, StructuredLogger, setup_logging

__all__ = [
    "setup_logging",
    "LoggingConfig",
    "LoggedOperation",
    "StructuredLogger",
]
