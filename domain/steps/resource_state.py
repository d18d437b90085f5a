# domain/steps/resource_state.py
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from domain.policies import PollSpec
from domain.resource_state import ProvisioningState
from domain.steps.base import Step

if TYPE_CHECKING:
    from domain.flow import FlowContext

StateFetch = Callable[["FlowContext"], ProvisioningState]


@dataclass(frozen=True)
class ResourceStateStep(Step):
    fetch: StateFetch
    target: ProvisioningState
    poll: PollSpec
    # None => only TransientError is treated as "not yet"
    is_retryable: Optional[Callable[[BaseException], bool]] = None
