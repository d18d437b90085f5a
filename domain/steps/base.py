# domain/steps/base.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from domain.policies import RetryPolicy

if TYPE_CHECKING:
    from domain.flow import FlowContext

Operation = Callable[["FlowContext"], Any]


@dataclass(frozen=True)
class Step:
    id: str
    name: str
    enabled: bool = field(default=True, kw_only=True)
    retry: Optional[RetryPolicy] = field(default=None, kw_only=True)
    cleanup: Optional[Operation] = field(default=None, kw_only=True)
    cleanup_name: Optional[str] = field(default=None, kw_only=True)
    cleanup_best_effort: bool = field(default=True, kw_only=True)
    # register cleanup even when the step fails (step may have partially succeeded)
    cleanup_on_failure: bool = field(default=False, kw_only=True)

    @property
    def cleanup_label(self) -> str:
        return self.cleanup_name or f"{self.id}.cleanup"
