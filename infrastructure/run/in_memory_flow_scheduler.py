from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Callable, Dict, Optional

from application.ports.flow_scheduler import FlowSchedulerPort


class InMemoryFlowScheduler(FlowSchedulerPort):
    """Runs independent flows on a thread pool, one future per flow id."""

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._lock = Lock()
        self._futures: Dict[str, Future] = {}

    def submit(self, flow_id: str, task: Callable[[], object]) -> Future:
        with self._lock:
            if flow_id in self._futures and not self._futures[flow_id].done():
                raise ValueError(f"Flow already running: {flow_id}")
            future = self._executor.submit(task)
            self._futures[flow_id] = future
            return future

    def wait(self, flow_id: str, timeout_sec: float) -> bool:
        future = self.get_future(flow_id)
        if future is None:
            return False
        try:
            future.result(timeout=timeout_sec)
        except Exception:
            return future.done()
        return True

    def get_future(self, flow_id: str) -> Optional[Future]:
        with self._lock:
            return self._futures.get(flow_id)

    def forget(self, flow_id: str) -> bool:
        """Drop a finished flow's future. A running flow is kept and False is returned."""
        with self._lock:
            future = self._futures.get(flow_id)
            if future is None or not future.done():
                return False
            del self._futures[flow_id]
            return True

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
