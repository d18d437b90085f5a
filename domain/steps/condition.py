# domain/steps/condition.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from domain.policies import PollSpec
from domain.steps.base import Operation, Step

if TYPE_CHECKING:
    from domain.flow import FlowContext

Probe = Callable[["FlowContext"], bool]


@dataclass(frozen=True)
class ConditionStep(Step):
    """Polls ``probe`` until it returns True."""

    probe: Probe
    poll: PollSpec


@dataclass(frozen=True)
class EventuallyStep(Step):
    """Polls ``operation`` until it completes without raising."""

    operation: Operation
    poll: PollSpec
