# domain/flow.py
"""
Flow domain model
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from domain.cancellation import CancelToken
from domain.cleanup import CleanupFailure
from domain.exceptions import FlowCancelledError, StepFailedError, WaitTimeoutError
from domain.steps.base import Step


class FlowStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABORTED = "aborted"


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class FlowSpec:
    """
    Flow aggregate root: an ordered list of steps for one procedure.
    """
    name: str
    steps: List[Step]
    description: str = ""


@dataclass
class FlowContext:
    run_id: str = ""
    vars: Dict[str, Any] = field(default_factory=dict)
    # values threaded between steps (ActionStep.save_as)
    state: Dict[str, Any] = field(default_factory=dict)
    cancel: CancelToken = field(default_factory=CancelToken)

    def detached(self) -> "FlowContext":
        """Same run data with a fresh cancel token, for teardown."""
        return FlowContext(
            run_id=self.run_id,
            vars=self.vars,
            state=self.state,
            cancel=CancelToken(),
        )


@dataclass
class StepRecord:
    step_id: str
    status: StepStatus = StepStatus.PENDING
    attempts: int = 0
    elapsed_ms: int = 0
    polls: int = 0
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class FlowResult:
    status: FlowStatus
    error: Optional[StepFailedError] = None
    cleanup_failures: List[CleanupFailure] = field(default_factory=list)
    steps: List[StepRecord] = field(default_factory=list)
    skipped_cleanups: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == FlowStatus.COMPLETED

    @property
    def failed_step_id(self) -> Optional[str]:
        return self.error.step_id if self.error is not None else None

    @property
    def cancelled(self) -> bool:
        return self.error is not None and isinstance(self.error.cause, FlowCancelledError)

    @property
    def timed_out(self) -> bool:
        return self.error is not None and isinstance(self.error.cause, WaitTimeoutError)

    def step(self, step_id: str) -> Optional[StepRecord]:
        for record in self.steps:
            if record.step_id == step_id:
                return record
        return None
