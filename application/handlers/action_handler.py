# application/handlers/action_handler.py
from __future__ import annotations

from application.handlers.base import StepHandler
from application.outcome import StepOutcome
from application.services.execution_deps import ExecutionDeps
from domain.flow import FlowContext
from domain.steps.action import ActionStep


class ActionStepHandler(StepHandler):
    def supports(self, step) -> bool:
        return isinstance(step, ActionStep)

    def handle(self, step: ActionStep, ctx: FlowContext, deps: ExecutionDeps) -> StepOutcome:
        value = step.action(ctx)
        if step.save_as:
            ctx.state[step.save_as] = value
            deps.logger.debug("action.saved", step_id=step.id, key=step.save_as)
        return StepOutcome(ok=True, value=value)
