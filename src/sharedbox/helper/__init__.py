"""
Helper Utilities for sharedbox
"""

from sharedbox.helper.logging_config import (
    SharedboxLoggingConfig,
    build_logging_config,
    get_logger,
    log_performance,
    temporary_log_level,
)

__all__ = [
    "SharedboxLoggingConfig",
    "build_logging_config",
    "get_logger",
    "log_performance",
    "temporary_log_level",
]
