# domain/steps/action.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from domain.steps.base import Operation, Step


@dataclass(frozen=True)
class ActionStep(Step):
    action: Operation
    save_as: Optional[str] = None  # ctx.state key for the action's return value
