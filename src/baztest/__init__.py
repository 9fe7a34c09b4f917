"""baztest: Bazel test discovery, execution and result parsing."""

__version__ = "0.1.0"
