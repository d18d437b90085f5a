# application/executor/step_sequencer.py
from __future__ import annotations

import time
from typing import List

from application.executor.cleanup_guard import CleanupGuard
from application.executor.handler_registry import HandlerRegistry
from application.executor.retry_executor import RetryExecutor
from application.outcome import StepOutcome
from application.services.execution_deps import ExecutionDeps
from domain.exceptions import StepFailedError, TerminalError
from domain.flow import FlowContext, FlowResult, FlowStatus, StepRecord, StepStatus
from domain.steps.base import Step


class StepSequencer:
    """
    Runs steps strictly in order. The first failing step aborts the flow and
    every later step is recorded as skipped. Cleanups of succeeded steps are
    pushed onto ``guard``; running them is the caller's job.
    """

    def __init__(self, registry: HandlerRegistry, retry_executor: RetryExecutor):
        self._registry = registry
        self._retry = retry_executor

    def execute(
        self,
        steps: List[Step],
        ctx: FlowContext,
        deps: ExecutionDeps,
        guard: CleanupGuard,
    ) -> FlowResult:
        records = [StepRecord(step_id=s.id) for s in steps]

        for i, step in enumerate(steps):
            record = records[i]

            if step.enabled is False:
                record.status = StepStatus.SKIPPED
                deps.logger.info("step.skipped", step_id=step.id, reason="disabled")
                continue

            record.status = StepStatus.RUNNING
            t0 = time.perf_counter()
            try:
                ctx.cancel.raise_if_cancelled()
                if step.cleanup is not None and step.cleanup_on_failure:
                    guard.push(step.cleanup_label, step.cleanup, best_effort=step.cleanup_best_effort)
                outcome = self._run_step(step, ctx, deps, record)
            except Exception as exc:
                record.status = StepStatus.FAILED
                record.error = exc
                record.elapsed_ms = int((time.perf_counter() - t0) * 1000)
                deps.logger.error(
                    "step.failed",
                    step_id=step.id,
                    error_type=type(exc).__name__,
                    error=str(exc),
                    attempts=record.attempts,
                )
                for later in records[i + 1:]:
                    later.status = StepStatus.SKIPPED
                return FlowResult(
                    status=FlowStatus.ABORTED,
                    error=StepFailedError(step.id, exc),
                    steps=records,
                )

            record.status = StepStatus.SUCCEEDED
            record.polls = outcome.polls
            record.elapsed_ms = int((time.perf_counter() - t0) * 1000)

            if step.cleanup is not None and not step.cleanup_on_failure:
                guard.push(step.cleanup_label, step.cleanup, best_effort=step.cleanup_best_effort)

        return FlowResult(status=FlowStatus.COMPLETED, steps=records)

    def _run_step(self, step: Step, ctx: FlowContext, deps: ExecutionDeps, record: StepRecord) -> StepOutcome:
        handler = self._registry.get_handler(step)

        def attempt_once() -> StepOutcome:
            record.attempts += 1
            deps.logger.info(
                "step.start",
                step_id=step.id,
                step_type=type(step).__name__,
                attempt=record.attempts,
            )
            t0 = time.perf_counter()

            outcome = handler.handle(step, ctx, deps)

            deps.logger.info(
                "step.end",
                step_id=step.id,
                ok=(outcome is not None and outcome.ok),
                elapsed_ms=int((time.perf_counter() - t0) * 1000),
                attempt=record.attempts,
            )

            if outcome is None:
                raise RuntimeError(
                    f"Handler returned None: handler={type(handler).__name__}, step={step.id} ({type(step).__name__})"
                )
            if not outcome.ok:
                raise TerminalError(outcome.error_message or f"step {step.id} reported failure")
            return outcome

        if step.retry is None:
            return attempt_once()
        return self._retry.execute(attempt_once, step.retry, cancel=ctx.cancel, description=step.id)
