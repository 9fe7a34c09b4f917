"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (BAZTEST__SECTION__KEY)
3. Workspace YAML (<workspace>/.baztest/config.yaml)
4. Global YAML (~/.config/baztest/config.yaml)
5. Built-in defaults (this file)

Examples:
    BAZTEST__LOGGING__LEVEL=DEBUG
    BAZTEST__EXECUTION__MAX_CONCURRENCY=8
    BAZTEST__BAZEL__BAZEL_PATH=/usr/local/bin/bazelisk
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from baztest.config.constants import (
    MAX_CONCURRENCY_DEFAULT,
    MAX_CONCURRENCY_MAX,
    MAX_CONCURRENCY_MIN,
    METADATA_CHUNK_DEFAULT,
    METADATA_CHUNK_MAX,
    METADATA_CHUNK_MIN,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _clean_list(values: list[str]) -> list[str]:
    return [v.strip() for v in values if v and v.strip()]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        BAZTEST__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class BazelConfig(BaseModel):
    """How to invoke Bazel.

    Env vars:
        BAZTEST__BAZEL__BAZEL_PATH: Executable name or path (default: bazel)
    """

    bazel_path: str = Field(
        default="bazel",
        description="Bazel executable. bazelisk works as a drop-in.",
    )
    startup_args: list[str] = Field(
        default_factory=list,
        description="Startup options placed before the command verb, e.g. --output_base.",
    )

    @field_validator("bazel_path")
    @classmethod
    def validate_bazel_path(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("bazel_path must not be empty")
        return v

    @field_validator("startup_args")
    @classmethod
    def clean_startup_args(cls, v: list[str]) -> list[str]:
        return _clean_list(v)


class DiscoveryConfig(BaseModel):
    """Target discovery.

    Env vars:
        BAZTEST__DISCOVERY__FETCH_METADATA: Query tags/size/shards (default: true)
        BAZTEST__DISCOVERY__METADATA_CHUNK_SIZE: Labels per metadata query
    """

    query_paths: list[str] = Field(
        default_factory=lambda: ["//"],
        description="Package roots to search. '//' means the whole workspace.",
    )
    test_types: list[str] = Field(
        default_factory=lambda: ["cc_test"],
        description="Rule kinds treated as tests. test_suite is always included.",
    )
    fetch_metadata: bool = Field(
        default=True,
        description="Run a second query for tags, size and shard_count.",
    )
    metadata_chunk_size: int = Field(
        default=METADATA_CHUNK_DEFAULT,
        description="Labels per metadata query. Clamped to "
        f"[{METADATA_CHUNK_MIN}, {METADATA_CHUNK_MAX}].",
    )
    source_extensions: list[str] = Field(
        default_factory=lambda: [".cc", ".cpp", ".c", ".py", ".java", ".go", ".rs"],
        description="Extensions tried, in order, when guessing a target's source file.",
    )

    @field_validator("query_paths", "test_types", "source_extensions")
    @classmethod
    def clean_lists(cls, v: list[str]) -> list[str]:
        return _clean_list(v)

    @field_validator("query_paths")
    @classmethod
    def default_query_paths(cls, v: list[str]) -> list[str]:
        return v or ["//"]

    @field_validator("metadata_chunk_size")
    @classmethod
    def clamp_chunk_size(cls, v: int) -> int:
        return max(METADATA_CHUNK_MIN, min(METADATA_CHUNK_MAX, v))


class ExecutionConfig(BaseModel):
    """Test execution.

    Env vars:
        BAZTEST__EXECUTION__MAX_CONCURRENCY: Parallel bazel invocations (default: 4)
    """

    sequential_test_types: list[str] = Field(
        default_factory=lambda: ["java_test"],
        description="Rule kinds that must never overlap another running target.",
    )
    test_args: list[str] = Field(
        default_factory=list,
        description="Extra flags for every test invocation.",
    )
    max_concurrency: int = Field(
        default=MAX_CONCURRENCY_DEFAULT,
        description="Upper bound on concurrent bazel invocations. Clamped to "
        f"[{MAX_CONCURRENCY_MIN}, {MAX_CONCURRENCY_MAX}].",
    )

    @field_validator("sequential_test_types", "test_args")
    @classmethod
    def clean_lists(cls, v: list[str]) -> list[str]:
        return _clean_list(v)

    @field_validator("max_concurrency")
    @classmethod
    def clamp_concurrency(cls, v: int) -> int:
        return max(MAX_CONCURRENCY_MIN, min(MAX_CONCURRENCY_MAX, v))


class CoverageConfig(BaseModel):
    """Coverage report handling."""

    fallback_root: str | None = Field(
        default=None,
        description="Secondary root for resolving coverage paths that don't exist "
        "under the workspace.",
    )


class BazTestConfig(BaseModel):
    """Root configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    bazel: BazelConfig = Field(default_factory=BazelConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    coverage: CoverageConfig = Field(default_factory=CoverageConfig)
