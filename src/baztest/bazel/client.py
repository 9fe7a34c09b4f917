"""Bazel command facade: query, test, coverage, info."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from pathlib import Path

import structlog

from baztest.bazel import queries
from baztest.bazel.process import LineCallback, ProcessResult, run_streaming
from baztest.bazel.queries import RuleLine, RuleMetadata
from baztest.core.errors import DiscoveryError

logger = structlog.get_logger()

# `bazel query --keep_going` exits 3 when some packages failed to load but the
# rest of the result is still valid
_QUERY_PARTIAL_EXIT = 3


class BazelClient:
    """Runs bazel in one workspace.

    All commands go through :func:`run_streaming`, so output is line-buffered
    and launch failures never raise out of the process layer.
    """

    def __init__(
        self,
        workspace_root: Path,
        bazel_path: str = "bazel",
        startup_args: Sequence[str] = (),
    ) -> None:
        self.workspace_root = workspace_root
        self.bazel_path = bazel_path
        self.startup_args = tuple(startup_args)
        self._testlogs_dir: Path | None = None
        self._testlogs_lock = asyncio.Lock()

    def command(self, verb: str, *args: str) -> list[str]:
        return [self.bazel_path, *self.startup_args, verb, *args]

    async def _exec(
        self,
        verb: str,
        *args: str,
        on_line: LineCallback | None = None,
    ) -> ProcessResult:
        cmd = self.command(verb, *args)
        logger.debug("bazel_invoked", verb=verb, args=list(args))
        return await run_streaming(cmd, self.workspace_root, on_stdout=on_line, on_stderr=on_line)

    # =========================================================================
    # Query
    # =========================================================================

    async def query(self, expression: str, *, output: str = "label_kind") -> str:
        """Run ``bazel query`` and return stdout.

        Raises:
            DiscoveryError: bazel could not start, or the query failed outright.
        """
        result = await self._exec("query", expression, "--keep_going", f"--output={output}")
        if not result.launched:
            raise DiscoveryError.launch_failed(self.bazel_path, result.launch_error or "")
        if result.exit_code == _QUERY_PARTIAL_EXIT and result.stdout.strip():
            logger.warning("query_partial_result", expression=expression)
        elif result.exit_code != 0:
            raise DiscoveryError.query_failed(expression, result.exit_code or -1, result.stderr)
        return result.stdout

    async def query_test_targets(
        self, paths: Sequence[str], test_types: Sequence[str]
    ) -> list[RuleLine]:
        expression = queries.build_discovery_query(paths, test_types)
        stdout = await self.query(expression)
        rules = queries.parse_label_kind_output(stdout, test_types)
        if not rules:
            raise DiscoveryError.no_targets(expression)
        return rules

    async def query_suite_tests(self, label: str) -> list[str]:
        stdout = await self.query(queries.build_suite_query(label), output="label")
        return queries.parse_label_output(stdout)

    async def query_metadata(self, labels: Sequence[str]) -> dict[str, RuleMetadata]:
        if not labels:
            return {}
        stdout = await self.query(queries.build_set_query(labels), output="streamed_jsonproto")
        return queries.parse_metadata_output(stdout)

    # =========================================================================
    # Execution
    # =========================================================================

    async def run(
        self,
        verb: str,
        label: str,
        flags: Sequence[str] = (),
        on_line: LineCallback | None = None,
    ) -> ProcessResult:
        return await self._exec(verb, *flags, label, on_line=on_line)

    async def test(
        self, label: str, flags: Sequence[str] = (), on_line: LineCallback | None = None
    ) -> ProcessResult:
        return await self.run("test", label, flags, on_line)

    async def coverage(
        self, label: str, flags: Sequence[str] = (), on_line: LineCallback | None = None
    ) -> ProcessResult:
        return await self.run("coverage", label, flags, on_line)

    # =========================================================================
    # Info
    # =========================================================================

    async def testlogs_dir(self) -> Path | None:
        """``bazel info bazel-testlogs``, cached after the first success."""
        async with self._testlogs_lock:
            if self._testlogs_dir is not None:
                return self._testlogs_dir
            result = await self._exec("info", "bazel-testlogs")
            if not result.succeeded:
                logger.warning(
                    "testlogs_lookup_failed",
                    exit_code=result.exit_code,
                    error=result.launch_error or result.stderr.strip()[-500:],
                )
                return None
            lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
            if not lines:
                logger.warning("testlogs_lookup_empty")
                return None
            self._testlogs_dir = Path(lines[-1])
            return self._testlogs_dir

    async def version(self) -> str | None:
        result = await self._exec("version")
        if not result.succeeded:
            return None
        for line in result.stdout.splitlines():
            if line.startswith("Build label:"):
                return line.split(":", 1)[1].strip()
        return None
