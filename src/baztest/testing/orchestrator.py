"""Test execution orchestration.

Drives ``bazel test``/``bazel coverage`` for a tree selection:

1. Expand the selection to targets and compute each target's flags.
2. Run the sequential lane one target at a time, in order.
3. Run the concurrent lane under a semaphore of ``max_concurrency``.
4. For each finished target, read test.xml (and coverage.dat) and update
   its node. Without a test.xml, cases are read from the bazel output; a
   failed target also gets the source locations its output names.

Cancellation stops new launches in both lanes. Processes already started run
to completion and their reports are still parsed.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import structlog

from baztest.bazel.client import BazelClient
from baztest.bazel.process import ProcessResult
from baztest.config.constants import (
    BAZEL_EXIT_MESSAGES,
    COVERAGE_DAT_NAME,
    DEFAULT_TEST_FLAGS,
    TEST_XML_NAME,
)
from baztest.config.models import BazTestConfig
from baztest.core.errors import BazTestError, ExecutionError, ExecutionFailure, ParseError
from baztest.core.logging import bound_run
from baztest.core.notices import NoticeHandler
from baztest.testing.coverage.lcov import LcovParser
from baztest.testing.coverage.models import CoverageSummary, FileLineCoverage
from baztest.testing.coverage.state import CoverageStateStore
from baztest.testing.flags import PlannedInvocation, plan_execution
from baztest.testing.models import (
    CaseStatus,
    FailureLocation,
    NodeStatus,
    ParsedReport,
    RunSummary,
    TestCaseResult,
)
from baztest.testing.output_report import find_failure_locations, parse_test_output
from baztest.testing.tree import NodeStore, TreeNode
from baztest.testing.xml_report import merge_reports, read_test_xml

logger = structlog.get_logger()


class OutputSink(Protocol):
    """Receives tool output one whole line at a time."""

    def write_line(self, label: str, line: str) -> None: ...


class MemoryOutputSink:
    """Keeps output per target in memory."""

    def __init__(self) -> None:
        self.lines: dict[str, list[str]] = {}

    def write_line(self, label: str, line: str) -> None:
        self.lines.setdefault(label, []).append(line)

    def text(self, label: str) -> str:
        return "\n".join(self.lines.get(label, ()))


def exit_message(exit_code: int) -> str:
    return BAZEL_EXIT_MESSAGES.get(exit_code, f"Bazel exited with code {exit_code}")


def report_dir(testlogs: Path, label: str) -> Path:
    """``bazel-testlogs`` directory for a label.

    ``//pkg/sub:t`` -> ``<testlogs>/pkg/sub/t``;
    ``@repo//pkg:t`` -> ``<testlogs>/external/repo/pkg/t``.
    """
    pkg, _, name = label.rpartition(":")
    if not pkg:
        pkg, name = label, label.rsplit("/", 1)[-1]
    base = testlogs
    if pkg.startswith("@"):
        repo, _, pkg = pkg.lstrip("@").partition("//")
        base = base / "external" / repo
    else:
        pkg = pkg.split("//", 1)[-1]
    return base / pkg / name if pkg else base / name


def find_reports(directory: Path, filename: str) -> list[Path]:
    """The report itself, or one per shard when the target is sharded."""
    direct = directory / filename
    if direct.is_file():
        return [direct]
    return sorted(directory.glob(f"shard_*_of_*/{filename}"))


@dataclass(slots=True)
class TargetOutcome:
    node_id: str
    label: str
    status: NodeStatus
    exit_code: int | None = None
    message: str | None = None
    error: BazTestError | None = None
    report: ParsedReport | None = None
    coverage: CoverageSummary | None = None
    failure_locations: tuple[FailureLocation, ...] = ()
    duration_seconds: float = 0.0


@dataclass(frozen=True, slots=True)
class RunOutcome:
    run_id: str
    outcomes: tuple[TargetOutcome, ...] = ()
    cancelled: tuple[str, ...] = ()

    @property
    def passed(self) -> list[str]:
        return [o.label for o in self.outcomes if o.status is NodeStatus.PASSED]

    @property
    def failed(self) -> list[str]:
        return [o.label for o in self.outcomes if o.status is NodeStatus.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed and not self.cancelled


@dataclass
class ExecutionOrchestrator:
    """Runs selections against one workspace and writes results into the tree."""

    client: BazelClient
    store: NodeStore
    config: BazTestConfig
    coverage_store: CoverageStateStore
    notices: NoticeHandler
    output: OutputSink = field(default_factory=MemoryOutputSink)
    coverage_parser: LcovParser = field(default_factory=LcovParser)

    async def run(
        self,
        selection: Iterable[TreeNode],
        cancel_event: asyncio.Event | None = None,
        *,
        overrides: Sequence[str] = (),
        test_filter: str | None = None,
        coverage: bool = False,
    ) -> RunOutcome:
        cancel = cancel_event or asyncio.Event()
        exe = self.config.execution
        plan = plan_execution(
            selection,
            default_flags=DEFAULT_TEST_FLAGS,
            user_flags=exe.test_args,
            run_flags=overrides,
            test_filter=test_filter,
            sequential_kinds=exe.sequential_test_types,
        )
        verb = "coverage" if coverage else "test"
        with bound_run() as run_id:
            self.notices.new_cycle()
            logger.info(
                "run_started",
                verb=verb,
                sequential=len(plan.sequential),
                concurrent=len(plan.concurrent),
                max_concurrency=exe.max_concurrency,
            )
            return await self._run_lanes(run_id, plan.sequential, plan.concurrent, verb, cancel)

    async def _run_lanes(
        self,
        run_id: str,
        sequential: Sequence[PlannedInvocation],
        concurrent: Sequence[PlannedInvocation],
        verb: str,
        cancel: asyncio.Event,
    ) -> RunOutcome:
        outcomes: list[TargetOutcome] = []
        cancelled: list[str] = []
        for inv in sequential:
            if cancel.is_set():
                cancelled.append(inv.label)
                continue
            outcomes.append(await self._run_target(inv, verb))

        semaphore = asyncio.Semaphore(self.config.execution.max_concurrency)

        async def guarded(inv: PlannedInvocation) -> TargetOutcome | None:
            if cancel.is_set():
                return None
            async with semaphore:
                if cancel.is_set():
                    return None
                return await self._run_target(inv, verb)

        results = await asyncio.gather(*(guarded(inv) for inv in concurrent))
        for inv, outcome in zip(concurrent, results, strict=True):
            if outcome is None:
                cancelled.append(inv.label)
            else:
                outcomes.append(outcome)

        result = RunOutcome(run_id=run_id, outcomes=tuple(outcomes), cancelled=tuple(cancelled))
        logger.info(
            "run_finished",
            passed=len(result.passed),
            failed=len(result.failed),
            cancelled=len(cancelled),
        )
        return result

    async def _run_target(self, inv: PlannedInvocation, verb: str) -> TargetOutcome:
        node = self.store.get(inv.node_id)
        if node is not None:
            node.busy = True
            node.status = NodeStatus.RUNNING
            node.message = None
            node.failure_locations = ()

        def on_line(line: str) -> None:
            self.output.write_line(inv.label, line)

        start = time.monotonic()
        try:
            logger.debug("target_started", target=inv.label, flags=list(inv.flags))
            result = await self.client.run(verb, inv.label, inv.flags, on_line)
            outcome = TargetOutcome(node_id=inv.node_id, label=inv.label, status=NodeStatus.FAILED)

            if not result.launched:
                err = ExecutionError.launch_failed(inv.label, result.launch_error or "unknown")
                outcome.error = err
                outcome.message = err.message
                self.notices.handle(err, context="Test run")
            else:
                outcome.exit_code = result.exit_code
                outcome.report = await self._collect_report(inv, result)
                if verb == "coverage":
                    outcome.coverage = await self._collect_coverage(inv.label)
                if result.exit_code == 0:
                    outcome.status = NodeStatus.PASSED
                else:
                    code = result.exit_code if result.exit_code is not None else -1
                    failure = ExecutionFailure.nonzero_exit(
                        inv.label, code, self._failure_message(code, outcome.report)
                    )
                    outcome.error = failure
                    outcome.message = failure.message
                    outcome.failure_locations = tuple(
                        await asyncio.to_thread(
                            find_failure_locations,
                            result.combined_output.splitlines(),
                            self.client.workspace_root,
                        )
                    )
            outcome.duration_seconds = time.monotonic() - start
        except BaseException:
            if node is not None:
                node.status = NodeStatus.FAILED
                node.message = "Run aborted"
            raise
        finally:
            if node is not None:
                node.busy = False

        if node is not None:
            node.status = outcome.status
            node.message = outcome.message
            node.failure_locations = outcome.failure_locations
            if outcome.report is not None:
                node.test_cases = outcome.report.test_cases
                node.summary = outcome.report.summary

        logger.info(
            "target_finished",
            target=inv.label,
            status=outcome.status.value,
            exit_code=outcome.exit_code,
            duration=round(outcome.duration_seconds, 2),
        )
        return outcome

    @staticmethod
    def _failure_message(exit_code: int, report: ParsedReport | None) -> str:
        message = exit_message(exit_code)
        if report is not None and report.summary.total:
            s = report.summary
            bad = s.failed + s.timed_out + s.errors
            if bad:
                message = f"{message}: {bad} of {s.total} cases failed"
        return message

    async def _collect_report(
        self, inv: PlannedInvocation, result: ProcessResult
    ) -> ParsedReport | None:
        label = inv.label
        testlogs = await self.client.testlogs_dir()
        paths: list[Path] = []
        if testlogs is not None:
            paths = await asyncio.to_thread(find_reports, report_dir(testlogs, label), TEST_XML_NAME)
        if not paths:
            logger.debug("test_xml_missing", target=label)
            return await asyncio.to_thread(self._report_from_output, inv, result)

        reports: list[ParsedReport] = []
        for path in paths:
            try:
                reports.append(await asyncio.to_thread(read_test_xml, path, label))
            except ParseError as e:
                self.notices.handle(e, context=f"Results for {label}")
                placeholder = TestCaseResult(
                    name=path.parent.name if path.parent.name.startswith("shard_") else label,
                    status=CaseStatus.ERROR,
                    error_message=e.message,
                    file=str(path),
                )
                reports.append(
                    ParsedReport(
                        target_label=label,
                        test_cases=(placeholder,),
                        summary=RunSummary.from_cases((placeholder,)),
                    )
                )
        return merge_reports(label, reports)

    @staticmethod
    def _report_from_output(inv: PlannedInvocation, result: ProcessResult) -> ParsedReport | None:
        output = result.combined_output
        if not output:
            return None
        report = parse_test_output(output, inv.label, inv.kind)
        if not report.test_cases and not report.summary.total:
            return None
        return report

    async def _collect_coverage(self, label: str) -> CoverageSummary | None:
        testlogs = await self.client.testlogs_dir()
        if testlogs is None:
            return None
        directory = report_dir(testlogs, label)
        paths = await asyncio.to_thread(find_reports, directory, COVERAGE_DAT_NAME)
        if not paths:
            logger.info("coverage_report_missing", target=label)
            return None

        fallback = self.config.coverage.fallback_root
        merged: dict[str, FileLineCoverage] = {}
        for path in paths:
            try:
                parsed = await asyncio.to_thread(
                    self.coverage_parser.parse_file,
                    path,
                    self.client.workspace_root,
                    Path(fallback) if fallback else None,
                )
            except ParseError as e:
                self.notices.handle(e, context=f"Coverage for {label}")
                continue
            # shards cover the same files; hits add up
            for f in parsed:
                into = merged.setdefault(f.path, FileLineCoverage(path=f.path))
                for line, hits in f.lines.items():
                    into.add_hits(line, hits)
                for key, hits in f.branches.items():
                    into.add_branch(key, hits)
        if not merged:
            return None
        summary = CoverageSummary.from_files(merged.values(), artifacts=[str(p) for p in paths])
        self.coverage_store.set_summary(label, summary)
        return summary
