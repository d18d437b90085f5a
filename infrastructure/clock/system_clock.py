# infrastructure/clock/system_clock.py
from __future__ import annotations

import time
from typing import Optional

from application.ports.clock import ClockPort
from domain.cancellation import CancelToken
from domain.exceptions import FlowCancelledError


class SystemClock(ClockPort):
    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel: Optional[CancelToken] = None) -> None:
        if cancel is None:
            time.sleep(max(0.0, seconds))
            return
        if cancel.wait(seconds):
            raise FlowCancelledError(cancel.reason or "cancelled")
