"""Coverage parsing and run history."""

from baztest.testing.coverage.lcov import LcovParser, normalize_coverage_path, resolve_coverage_path
from baztest.testing.coverage.models import (
    CoverageRun,
    CoverageSummary,
    FileCoverageSummary,
    FileLineCoverage,
    LineCoverageMap,
)
from baztest.testing.coverage.state import CoverageStateStore, format_short

__all__ = [
    "CoverageRun",
    "CoverageStateStore",
    "CoverageSummary",
    "FileCoverageSummary",
    "FileLineCoverage",
    "LcovParser",
    "LineCoverageMap",
    "format_short",
    "normalize_coverage_path",
    "resolve_coverage_path",
]
