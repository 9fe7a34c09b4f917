"""Test discovery, tree reconciliation, execution and result parsing."""

from baztest.testing.discovery import DiscoveryResult, TargetDiscoveryCache
from baztest.testing.models import (
    CaseStatus,
    FailureLocation,
    NodeStatus,
    ParsedReport,
    RunSummary,
    Target,
    TestCaseResult,
)
from baztest.testing.orchestrator import ExecutionOrchestrator, RunOutcome, TargetOutcome
from baztest.testing.output_report import find_failure_locations, parse_test_output
from baztest.testing.tree import InMemoryNodeStore, NodeStore, TreeNode, TreeReconciler
from baztest.testing.xml_report import parse_test_xml

__all__ = [
    "CaseStatus",
    "DiscoveryResult",
    "ExecutionOrchestrator",
    "FailureLocation",
    "InMemoryNodeStore",
    "NodeStatus",
    "NodeStore",
    "ParsedReport",
    "RunOutcome",
    "RunSummary",
    "Target",
    "TargetDiscoveryCache",
    "TargetOutcome",
    "TestCaseResult",
    "TreeNode",
    "TreeReconciler",
    "find_failure_locations",
    "parse_test_output",
    "parse_test_xml",
]
