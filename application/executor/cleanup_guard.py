# application/executor/cleanup_guard.py
from __future__ import annotations

from threading import Lock
from typing import Any, Callable, List, Optional

from application.ports.logger import LoggerPort
from domain.cleanup import CleanupAction, CleanupFailure
from domain.flow import FlowContext


class CleanupGuard:
    """
    LIFO stack of teardown actions.

    ``run_all`` drains the stack first, then runs every action in reverse
    registration order. Failures are logged and collected, never raised.
    """

    def __init__(self, logger: LoggerPort):
        self._logger = logger
        self._actions: List[CleanupAction] = []
        self._next_order = 0
        self._lock = Lock()

    def register(self, action: CleanupAction) -> None:
        with self._lock:
            self._actions.append(action)
            self._next_order = max(self._next_order, action.order + 1)

    def push(self, name: str, action: Callable[..., Any], best_effort: bool = True) -> CleanupAction:
        with self._lock:
            entry = CleanupAction(order=self._next_order, name=name, action=action, best_effort=best_effort)
            self._actions.append(entry)
            self._next_order += 1
        return entry

    def pending(self) -> List[str]:
        with self._lock:
            return [a.name for a in reversed(self._actions)]

    def drain(self) -> List[CleanupAction]:
        with self._lock:
            actions, self._actions = self._actions, []
        return actions

    def run_all(self, ctx: Optional[FlowContext] = None) -> List[CleanupFailure]:
        actions = self.drain()
        failures: List[CleanupFailure] = []

        for entry in reversed(actions):
            self._logger.info("cleanup.start", cleanup=entry.name, order=entry.order)
            try:
                if ctx is None:
                    entry.action()
                else:
                    entry.action(ctx)
            except Exception as exc:
                self._logger.error(
                    "cleanup.failed",
                    cleanup=entry.name,
                    order=entry.order,
                    best_effort=entry.best_effort,
                    error=str(exc),
                )
                failures.append(
                    CleanupFailure(
                        order=entry.order,
                        name=entry.name,
                        error=exc,
                        best_effort=entry.best_effort,
                    )
                )
                continue
            self._logger.info("cleanup.end", cleanup=entry.name, order=entry.order)

        return failures
