"""Service container for one Bazel workspace.

Owns the long-lived services (discovery cache, coverage store, node store)
and wires them to the reconciler and orchestrator. Create it once per
workspace and close it when the host shuts down.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from baztest.bazel.client import BazelClient
from baztest.config.loader import load_config
from baztest.config.models import BazTestConfig
from baztest.core.errors import BazTestError
from baztest.core.notices import NoticeHandler
from baztest.testing.coverage.lcov import LcovParser
from baztest.testing.coverage.state import CoverageStateStore
from baztest.testing.discovery import DiscoveryResult, TargetDiscoveryCache
from baztest.testing.models import Target
from baztest.testing.orchestrator import (
    ExecutionOrchestrator,
    MemoryOutputSink,
    OutputSink,
    RunOutcome,
)
from baztest.testing.tree import InMemoryNodeStore, NodeStore, ReconcileResult, TreeReconciler

logger = structlog.get_logger()


@dataclass
class TestExplorer:
    """Everything a host needs to browse and run a workspace's tests."""

    __test__ = False  # not a pytest class

    workspace_root: Path
    config: BazTestConfig
    client: BazelClient
    discovery: TargetDiscoveryCache
    store: NodeStore
    reconciler: TreeReconciler
    coverage: CoverageStateStore
    coverage_parser: LcovParser
    notices: NoticeHandler
    orchestrator: ExecutionOrchestrator
    _closed: bool = field(default=False, init=False)

    @classmethod
    def create(
        cls,
        workspace_root: Path,
        *,
        config: BazTestConfig | None = None,
        notify: Callable[[str], None] | None = None,
        output: OutputSink | None = None,
        store: NodeStore | None = None,
        client: BazelClient | None = None,
        **config_overrides: Any,
    ) -> TestExplorer:
        """Factory to create the explorer with all services wired together.

        Args:
            workspace_root: Bazel workspace root
            config: Preloaded config; loaded from the workspace when omitted
            notify: User-visible notice channel; notices are only logged if omitted
            output: Sink for streamed tool output
            store: Host-backed node store; in-memory if omitted
            client: Existing Bazel client (tests inject fakes here)
        """
        workspace_root = workspace_root.resolve()
        if config is None:
            config = load_config(workspace_root, **config_overrides)

        if client is None:
            client = BazelClient(
                workspace_root,
                bazel_path=config.bazel.bazel_path,
                startup_args=config.bazel.startup_args,
            )
        store = store if store is not None else InMemoryNodeStore()
        notices = NoticeHandler(notify or (lambda _msg: None))
        coverage = CoverageStateStore()
        coverage_parser = LcovParser()

        orchestrator = ExecutionOrchestrator(
            client=client,
            store=store,
            config=config,
            coverage_store=coverage,
            notices=notices,
            output=output or MemoryOutputSink(),
            coverage_parser=coverage_parser,
        )
        logger.debug("explorer_created", workspace=str(workspace_root))
        return cls(
            workspace_root=workspace_root,
            config=config,
            client=client,
            discovery=TargetDiscoveryCache(client, config.discovery),
            store=store,
            reconciler=TreeReconciler(workspace_root, config.discovery.source_extensions),
            coverage=coverage,
            coverage_parser=coverage_parser,
            notices=notices,
            orchestrator=orchestrator,
        )

    async def refresh(self) -> ReconcileResult | None:
        """Discover targets and sync the tree.

        Returns None when discovery failed (one notice is emitted), was
        dropped because a refresh is already running, or found no change.
        """
        self.notices.new_cycle()
        first = not self.discovery.loaded
        try:
            result: DiscoveryResult = await self.discovery.refresh()
        except BazTestError as e:
            self.notices.handle(e, context="Test discovery")
            return None
        if result.dropped or (not result.changed and not first):
            return None
        return self.reconciler.reconcile(self.store, result.targets)

    async def expand_suite(self, label: str) -> list[str]:
        """Query a suite's members and show them under its node."""
        try:
            members = await self.discovery.suite_members(label)
        except BazTestError as e:
            self.notices.handle(e, context=f"Expanding {label}")
            return []
        targets = [self.discovery.get(m) or Target(label=m, kind="") for m in members]
        return self.reconciler.attach_suite_members(self.store, label, targets)

    async def run(
        self,
        labels: Sequence[str],
        cancel_event: asyncio.Event | None = None,
        **kwargs: Any,
    ) -> RunOutcome:
        """Run nodes by id. Unknown ids are reported and skipped."""
        selection = []
        for label in labels:
            node = self.store.get(label)
            if node is None:
                logger.warning("run_unknown_node", node=label)
                continue
            selection.append(node)
        return await self.orchestrator.run(selection, cancel_event, **kwargs)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.coverage.clear()
        self.coverage_parser.clear()
        logger.debug("explorer_closed", workspace=str(self.workspace_root))

    def __enter__(self) -> TestExplorer:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
