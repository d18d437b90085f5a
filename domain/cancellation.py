# domain/cancellation.py
from __future__ import annotations

import time
from threading import Event, Lock
from typing import Callable, Optional

from domain.exceptions import FlowCancelledError


class CancelToken:
    """
    External cancellation signal for one flow.

    Cancelled explicitly via ``cancel()`` or implicitly once ``deadline``
    (in ``time_fn`` units) has passed.
    """

    def __init__(
        self,
        deadline: Optional[float] = None,
        time_fn: Callable[[], float] = time.monotonic,
    ):
        self._event = Event()
        self._lock = Lock()
        self._reason: Optional[str] = None
        self._deadline = deadline
        self._time_fn = time_fn

    @classmethod
    def with_timeout(
        cls,
        timeout_sec: float,
        time_fn: Callable[[], float] = time.monotonic,
    ) -> "CancelToken":
        return cls(deadline=time_fn() + timeout_sec, time_fn=time_fn)

    def cancel(self, reason: str = "cancelled by caller") -> None:
        with self._lock:
            if self._reason is None:
                self._reason = reason
        self._event.set()

    @property
    def reason(self) -> Optional[str]:
        self._check_deadline()
        return self._reason

    @property
    def is_cancelled(self) -> bool:
        self._check_deadline()
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise FlowCancelledError(self._reason or "cancelled")

    def wait(self, seconds: float) -> bool:
        """Block up to ``seconds``. Returns True if the token was cancelled meanwhile."""
        remaining = self._remaining()
        if remaining is not None and remaining < seconds:
            if self._event.wait(max(0.0, remaining)):
                return True
            return self.is_cancelled
        return self._event.wait(max(0.0, seconds))

    def _remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return self._deadline - self._time_fn()

    def _check_deadline(self) -> None:
        if self._event.is_set() or self._deadline is None:
            return
        if self._time_fn() >= self._deadline:
            self.cancel("deadline exceeded")
