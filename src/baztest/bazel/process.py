"""Line-streamed subprocess execution."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger()

LineCallback = Callable[[str], None]

# bazel can print very long progress lines; the default 64 KiB readline limit is too small
_STREAM_LIMIT = 4 * 1024 * 1024


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Outcome of one external invocation.

    Exactly one of two shapes: ``launch_error`` is set and ``exit_code`` is
    None when the process never started, otherwise ``exit_code`` is set.
    """

    command: tuple[str, ...]
    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    launch_error: str | None = None

    @property
    def launched(self) -> bool:
        return self.launch_error is None

    @property
    def succeeded(self) -> bool:
        return self.launched and self.exit_code == 0

    @property
    def combined_output(self) -> str:
        if self.stdout and self.stderr:
            sep = "" if self.stdout.endswith("\n") else "\n"
            return f"{self.stdout}{sep}{self.stderr}"
        return self.stdout or self.stderr


async def _pump(
    stream: asyncio.StreamReader | None,
    sink: list[str],
    callback: LineCallback | None,
) -> None:
    if stream is None:
        return
    while True:
        try:
            raw = await stream.readline()
        except ValueError:
            # readline already discarded the oversized line
            raw = b"<line too long, dropped>\n"
        if not raw:
            break
        line = raw.decode(errors="replace")
        sink.append(line)
        if callback is not None:
            callback(line.rstrip("\r\n"))


async def run_streaming(
    cmd: Sequence[str],
    cwd: Path,
    *,
    on_stdout: LineCallback | None = None,
    on_stderr: LineCallback | None = None,
    env: dict[str, str] | None = None,
) -> ProcessResult:
    """Run cmd, delivering each output line to the callbacks as it arrives.

    Launch failures (missing executable, bad cwd) come back as a result with
    ``launch_error`` set instead of raising.
    """
    command = tuple(cmd)
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            stdin=asyncio.subprocess.DEVNULL,
            cwd=cwd,
            env={**os.environ, **env} if env else None,
            limit=_STREAM_LIMIT,
        )
    except OSError as e:
        logger.warning("process_launch_failed", command=command[0], error=str(e))
        return ProcessResult(command=command, exit_code=None, launch_error=str(e))

    out: list[str] = []
    err: list[str] = []
    await asyncio.gather(
        _pump(proc.stdout, out, on_stdout),
        _pump(proc.stderr, err, on_stderr),
    )
    exit_code = await proc.wait()
    logger.debug("process_exited", command=command[0], exit_code=exit_code)
    return ProcessResult(
        command=command,
        exit_code=exit_code,
        stdout="".join(out),
        stderr="".join(err),
    )
