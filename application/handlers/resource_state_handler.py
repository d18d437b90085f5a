# application/handlers/resource_state_handler.py
from __future__ import annotations

from application.executor.resource_state_waiter import ResourceStateWaiter
from application.handlers.base import StepHandler
from application.outcome import StepOutcome
from application.services.execution_deps import ExecutionDeps
from domain.flow import FlowContext
from domain.steps.resource_state import ResourceStateStep


class ResourceStateStepHandler(StepHandler):
    def __init__(self, waiter: ResourceStateWaiter):
        self._waiter = waiter

    def supports(self, step) -> bool:
        return isinstance(step, ResourceStateStep)

    def handle(self, step: ResourceStateStep, ctx: FlowContext, deps: ExecutionDeps) -> StepOutcome:
        attempts = self._waiter.wait_for_state(
            lambda: step.fetch(ctx),
            step.target,
            step.poll,
            is_retryable=step.is_retryable,
            cancel=ctx.cancel,
            description=step.name,
        )
        return StepOutcome(ok=True, value=step.target, polls=attempts)
