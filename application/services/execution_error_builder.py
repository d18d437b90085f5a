# application/services/execution_error_builder.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from domain.flow import FlowResult


@dataclass(frozen=True)
class ExecutionErrorDetail:
    code: str
    message: str
    step_id: Optional[str]
    cleanup_failures: List[str] = field(default_factory=list)


class ExecutionErrorBuilder:
    def build_from_result(self, result: FlowResult) -> Optional[ExecutionErrorDetail]:
        if result.error is None:
            return None
        if result.cancelled:
            code = "cancelled"
        elif result.timed_out:
            code = "timeout"
        else:
            code = "step_failed"
        return ExecutionErrorDetail(
            code=code,
            message=str(result.error),
            step_id=result.failed_step_id,
            cleanup_failures=[f.message for f in result.cleanup_failures],
        )

    def build_from_exception(self, message: str) -> ExecutionErrorDetail:
        return ExecutionErrorDetail(
            code="exception",
            message=message,
            step_id=None,
        )
