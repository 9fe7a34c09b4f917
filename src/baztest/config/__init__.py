"""Config module exports."""

from baztest.config.loader import load_config
from baztest.config.models import (
    BazelConfig,
    BazTestConfig,
    CoverageConfig,
    DiscoveryConfig,
    ExecutionConfig,
    LoggingConfig,
)

__all__ = [
    "load_config",
    "BazTestConfig",
    "BazelConfig",
    "CoverageConfig",
    "DiscoveryConfig",
    "ExecutionConfig",
    "LoggingConfig",
]
