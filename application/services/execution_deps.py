# application/services/execution_deps.py
from __future__ import annotations

from dataclasses import dataclass, replace

from application.ports.clock import ClockPort
from application.ports.logger import LoggerPort


@dataclass(frozen=True)
class ExecutionDeps:
    logger: LoggerPort
    clock: ClockPort

    def with_logger(self, logger: LoggerPort) -> "ExecutionDeps":
        return replace(self, logger=logger)
