# application/ports/clock.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from domain.cancellation import CancelToken


class ClockPort(ABC):
    @abstractmethod
    def monotonic(self) -> float:
        ...

    @abstractmethod
    def sleep(self, seconds: float, cancel: Optional[CancelToken] = None) -> None:
        """
        Block for ``seconds``. Raises FlowCancelledError as soon as ``cancel`` fires.
        """
        ...
