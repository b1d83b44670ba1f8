"""Cooperative handling of Ctrl-C while a solve is running.

While the listener is active, SIGINT no longer raises ``KeyboardInterrupt``;
the signal is recorded instead. The solver polls ``is_interrupted`` between
iterations and stops cleanly.
"""

from __future__ import annotations

import signal
from types import FrameType, TracebackType
from typing import Any, Optional


class InterruptListener:
    """Records interrupt signals instead of letting them abort the program."""

    def __init__(self, signum: int = signal.SIGINT) -> None:
        self._signum = signum
        self._previous: Any = None
        self._active = False
        self._detected = 0

    def _handle(self, signum: int, frame: Optional[FrameType]) -> None:
        self._detected = signum if signum else -1

    def start(self) -> None:
        """Install the handler and clear any earlier interrupt."""
        self._detected = 0
        if self._active:
            return
        self._previous = signal.signal(self._signum, self._handle)
        self._active = True

    def stop(self) -> None:
        """Restore the handler that was in place before ``start``."""
        if not self._active:
            return
        previous = self._previous if self._previous is not None else signal.SIG_DFL
        signal.signal(self._signum, previous)
        self._previous = None
        self._active = False

    def is_interrupted(self) -> bool:
        """True once the signal has arrived since the last ``start``."""
        return self._detected != 0

    def __enter__(self) -> "InterruptListener":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.stop()