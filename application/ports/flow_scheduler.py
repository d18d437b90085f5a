from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from concurrent.futures import Future


class FlowSchedulerPort(ABC):
    @abstractmethod
    def submit(self, flow_id: str, task: Callable[[], object]) -> Future:
        ...

    @abstractmethod
    def wait(self, flow_id: str, timeout_sec: float) -> bool:
        ...

    @abstractmethod
    def get_future(self, flow_id: str) -> Optional[Future]:
        ...

    @abstractmethod
    def forget(self, flow_id: str) -> bool:
        ...
