"""baztest error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Discovery
- 4xxx: Parse
- 5xxx: Execution
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003
    CONFIG_FILE_NOT_FOUND = 2004

    # Discovery (3xxx)
    DISCOVERY_QUERY_FAILED = 3001
    DISCOVERY_NO_TARGETS = 3002
    DISCOVERY_LAUNCH_FAILED = 3003

    # Parse (4xxx)
    PARSE_MALFORMED_DOCUMENT = 4001
    PARSE_UNREADABLE_REPORT = 4002
    PARSE_MALFORMED_RECORD = 4003

    # Execution (5xxx)
    EXECUTION_LAUNCH_FAILED = 5001
    EXECUTION_NONZERO_EXIT = 5002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_TIMEOUT = 9002


@dataclass(frozen=True, slots=True)
class BazTestError(Exception):
    """Base error with structured context for notices and logs."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'DISCOVERY_QUERY_FAILED')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(BazTestError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class DiscoveryError(BazTestError):
    """Target query failed or produced nothing usable. The previous cache stays valid."""

    @classmethod
    def launch_failed(cls, command: str, reason: str) -> "DiscoveryError":
        return cls(
            code=ErrorCode.DISCOVERY_LAUNCH_FAILED,
            message=f"Could not start query ({command}): {reason}",
            details={"command": command, "reason": reason},
        )

    @classmethod
    def query_failed(cls, expression: str, exit_code: int, stderr: str = "") -> "DiscoveryError":
        return cls(
            code=ErrorCode.DISCOVERY_QUERY_FAILED,
            message=f"Query failed with exit code {exit_code}",
            retryable=True,
            details={"expression": expression, "exit_code": exit_code, "stderr": stderr[-2000:]},
        )

    @classmethod
    def no_targets(cls, expression: str) -> "DiscoveryError":
        return cls(
            code=ErrorCode.DISCOVERY_NO_TARGETS,
            message="Query returned no test targets",
            details={"expression": expression},
        )


class ParseError(BazTestError):
    """A report document could not be read into any structure."""

    @classmethod
    def malformed_document(cls, source: str, reason: str) -> "ParseError":
        return cls(
            code=ErrorCode.PARSE_MALFORMED_DOCUMENT,
            message=f"Malformed report for {source}: {reason}",
            details={"source": source, "reason": reason},
        )

    @classmethod
    def unreadable_report(cls, path: str, reason: str) -> "ParseError":
        return cls(
            code=ErrorCode.PARSE_UNREADABLE_REPORT,
            message=f"Could not read report {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class RecoverableRecordError(BazTestError):
    """A single bad record inside an otherwise valid report."""

    @classmethod
    def malformed_record(cls, record: str, reason: str, line_no: int) -> "RecoverableRecordError":
        return cls(
            code=ErrorCode.PARSE_MALFORMED_RECORD,
            message=f"Skipping record on line {line_no}: {reason}",
            details={"record": record, "reason": reason, "line_no": line_no},
        )


class ExecutionError(BazTestError):
    """The external tool could not be launched at all."""

    @classmethod
    def launch_failed(cls, label: str, reason: str) -> "ExecutionError":
        return cls(
            code=ErrorCode.EXECUTION_LAUNCH_FAILED,
            message=f"Failed to launch bazel: {reason}",
            details={"label": label, "reason": reason},
        )


class ExecutionFailure(BazTestError):
    """The external tool ran and exited nonzero."""

    @classmethod
    def nonzero_exit(cls, label: str, exit_code: int, summary: str) -> "ExecutionFailure":
        return cls(
            code=ErrorCode.EXECUTION_NONZERO_EXIT,
            message=summary,
            details={"label": label, "exit_code": exit_code},
        )


class InternalError(BazTestError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
