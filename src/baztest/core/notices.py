"""Top-level error handler: one user notice and one log entry per error."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from baztest.core.errors import BazTestError
from baztest.core.logging import get_log_file_path

logger = structlog.get_logger()


@dataclass
class NoticeHandler:
    """Routes discovery and document-level errors to the host.

    ``notify`` is the host's user-visible channel (a status bar, a console
    print). Identical notices inside one cycle are collapsed; call
    ``new_cycle()`` when a fresh refresh or run begins.
    """

    notify: Callable[[str], None]

    _seen: set[tuple[str, str]] = field(default_factory=set, init=False)
    _count: int = field(default=0, init=False)

    @property
    def count(self) -> int:
        """Number of notices emitted so far."""
        return self._count

    def new_cycle(self) -> None:
        self._seen.clear()

    def handle(self, error: BaseException, *, context: str) -> bool:
        """Report error once. Returns False when an identical notice was already sent."""
        key = (context, str(error))
        if key in self._seen:
            return False
        self._seen.add(key)

        if isinstance(error, BazTestError):
            logger.error(
                "operation_failed",
                context=context,
                error=error.error_name,
                message=error.message,
                details=error.details,
            )
            text = f"{context}: {error.message}"
        else:
            logger.exception("operation_crashed", context=context, exc_info=error)
            text = f"{context}: unexpected {type(error).__name__}: {error}"

        log_path = get_log_file_path()
        if log_path is not None:
            text = f"{text} (see {log_path})"
        self.notify(text)
        self._count += 1
        return True
