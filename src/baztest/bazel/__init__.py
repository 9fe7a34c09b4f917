"""Bazel process and query layer."""

from baztest.bazel.client import BazelClient
from baztest.bazel.process import ProcessResult, run_streaming

__all__ = ["BazelClient", "ProcessResult", "run_streaming"]
