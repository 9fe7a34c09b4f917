"""Core module exports."""

from baztest.core.errors import (
    BazTestError,
    ConfigError,
    DiscoveryError,
    ErrorCode,
    ExecutionError,
    ExecutionFailure,
    InternalError,
    ParseError,
    RecoverableRecordError,
)
from baztest.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Errors
    "BazTestError",
    "ConfigError",
    "DiscoveryError",
    "ErrorCode",
    "ExecutionError",
    "ExecutionFailure",
    "InternalError",
    "ParseError",
    "RecoverableRecordError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
]
