# application/handlers/condition_handler.py
from __future__ import annotations

from application.executor.condition_poller import ConditionPoller
from application.handlers.base import StepHandler
from application.outcome import StepOutcome
from application.services.execution_deps import ExecutionDeps
from domain.flow import FlowContext
from domain.steps.condition import ConditionStep, EventuallyStep


class ConditionStepHandler(StepHandler):
    def __init__(self, poller: ConditionPoller):
        self._poller = poller

    def supports(self, step) -> bool:
        return isinstance(step, ConditionStep)

    def handle(self, step: ConditionStep, ctx: FlowContext, deps: ExecutionDeps) -> StepOutcome:
        attempts = self._poller.poll(
            lambda: step.probe(ctx),
            step.poll,
            cancel=ctx.cancel,
            description=step.name,
        )
        return StepOutcome(ok=True, polls=attempts)


class EventuallyStepHandler(StepHandler):
    def __init__(self, poller: ConditionPoller):
        self._poller = poller

    def supports(self, step) -> bool:
        return isinstance(step, EventuallyStep)

    def handle(self, step: EventuallyStep, ctx: FlowContext, deps: ExecutionDeps) -> StepOutcome:
        attempts = self._poller.poll_until_succeeds(
            lambda: step.operation(ctx),
            step.poll,
            cancel=ctx.cancel,
            description=step.name,
        )
        return StepOutcome(ok=True, polls=attempts)
