"""Configuration constants.

Values here are fixed by Bazel's own contracts or are clamp bounds for
user-configurable settings. For configurable values see models.py.
"""

# =============================================================================
# Execution
# =============================================================================

DEFAULT_TEST_FLAGS: tuple[str, ...] = ("--test_output=all", "--test_summary=detailed")
"""Built-in flags, the lowest layer of the flag merge."""

MAX_CONCURRENCY_MIN = 1
MAX_CONCURRENCY_MAX = 64
MAX_CONCURRENCY_DEFAULT = 4

TAG_EXCLUSIVE = "exclusive"
TAG_EXTERNAL = "external"

REPEATABLE_FLAGS: frozenset[str] = frozenset(
    {
        "--test_arg",
        "--test_env",
        "--action_env",
        "--config",
        "--define",
        "--copt",
        "--run_under",
    }
)
"""Flags Bazel accepts many times; these are never collapsed by key."""

BAZEL_EXIT_MESSAGES: dict[int, str] = {
    1: "Build failed",
    2: "Command line problem",
    3: "Tests failed",
    4: "No tests found",
    8: "Interrupted",
    36: "Local environment issue",
    37: "Bazel internal error",
}
"""Short summaries for Bazel's documented exit codes."""

# =============================================================================
# Discovery
# =============================================================================

TEST_SUITE_KIND = "test_suite"

METADATA_CHUNK_MIN = 50
METADATA_CHUNK_MAX = 2000
METADATA_CHUNK_DEFAULT = 500

# =============================================================================
# Reports
# =============================================================================

TEST_XML_NAME = "test.xml"
COVERAGE_DAT_NAME = "coverage.dat"

TIMEOUT_FAILURE_TYPES: frozenset[str] = frozenset({"timeout", "timedout", "timed_out"})
"""Lowercased failure/error ``type`` values treated as a timeout."""

EXECROOT_MARKER = "/execroot/_main/"
