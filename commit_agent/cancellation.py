from __future__ import annotations
import threading
import time
from typing import Optional

from .errors import AgentTimeoutError, RunCancelled


class CancelToken:
    """Cooperative cancellation shared by one run.

    Checked before every LLM call and tool dispatch, polled while a git
    subprocess is running, and used to cap the LLM request timeout.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self.timeout = timeout
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        if self.cancelled:
            raise RunCancelled("run cancelled")
        if self.expired:
            raise AgentTimeoutError(f"run exceeded {self.timeout:g}s deadline", seconds=self.timeout)
