# application/services/flow_runner.py
from __future__ import annotations

import uuid
from dataclasses import replace
from typing import List, Optional

from application.executor.cleanup_guard import CleanupGuard
from application.executor.condition_poller import ConditionPoller
from application.executor.handler_registry import HandlerRegistry
from application.executor.resource_state_waiter import ResourceStateWaiter
from application.executor.retry_executor import RetryExecutor
from application.executor.step_sequencer import StepSequencer
from application.handlers.action_handler import ActionStepHandler
from application.handlers.base import StepHandler
from application.handlers.condition_handler import ConditionStepHandler, EventuallyStepHandler
from application.handlers.resource_state_handler import ResourceStateStepHandler
from application.services.execution_deps import ExecutionDeps
from domain.cancellation import CancelToken
from domain.flow import FlowContext, FlowResult, FlowSpec


def default_handlers(deps: ExecutionDeps) -> List[StepHandler]:
    poller = ConditionPoller(deps.clock, deps.logger)
    waiter = ResourceStateWaiter(poller, deps.logger)
    return [
        ActionStepHandler(),
        ConditionStepHandler(poller),
        EventuallyStepHandler(poller),
        ResourceStateStepHandler(waiter),
    ]


class FlowRunner:
    """
    Runs one flow: forward steps, then cleanup.

    A fresh sequencer and cleanup guard are built per ``run`` call, so one
    runner can serve several flows without sharing mutable state between them.
    The flow verdict depends on the forward phase only; cleanup failures are
    reported next to it.
    """

    def __init__(self, deps: ExecutionDeps, skip_cleanup: bool = False):
        self._deps = deps
        self._skip_cleanup = skip_cleanup

    def run(
        self,
        flow: FlowSpec,
        ctx: Optional[FlowContext] = None,
        cancel: Optional[CancelToken] = None,
    ) -> FlowResult:
        if ctx is None:
            ctx = FlowContext()
        if cancel is not None:
            ctx = replace(ctx, cancel=cancel)
        if not ctx.run_id:
            ctx.run_id = uuid.uuid4().hex

        deps = self._deps.with_logger(self._deps.logger.bind(run_id=ctx.run_id, flow=flow.name))

        registry = HandlerRegistry(default_handlers(deps))
        sequencer = StepSequencer(registry, RetryExecutor(deps.clock, deps.logger))
        guard = CleanupGuard(deps.logger)

        deps.logger.info("flow.start", steps=len(flow.steps))
        try:
            result = sequencer.execute(flow.steps, ctx, deps, guard)
        finally:
            if self._skip_cleanup:
                skipped = guard.pending()
                deps.logger.info("cleanup.skipped", pending=skipped)
            else:
                skipped = []
                failures = guard.run_all(ctx.detached())

        result = replace(
            result,
            cleanup_failures=[] if self._skip_cleanup else failures,
            skipped_cleanups=skipped,
        )
        deps.logger.info(
            "flow.end",
            status=result.status.value,
            failed_step_id=result.failed_step_id,
            error=str(result.error) if result.error is not None else None,
            cleanup_failures=[f.message for f in result.cleanup_failures],
        )
        return result


def run_flow(
    flow: FlowSpec,
    deps: Optional[ExecutionDeps] = None,
    ctx: Optional[FlowContext] = None,
    cancel: Optional[CancelToken] = None,
    skip_cleanup: bool = False,
) -> FlowResult:
    """Library entry point: run ``flow`` and return its result with any cleanup failures."""
    if deps is None:
        from infrastructure.clock.system_clock import SystemClock
        from infrastructure.logging.loguru_logger import LoguruLogger

        deps = ExecutionDeps(logger=LoguruLogger(), clock=SystemClock())
    return FlowRunner(deps, skip_cleanup=skip_cleanup).run(flow, ctx=ctx, cancel=cancel)
