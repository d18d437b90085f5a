# domain/cleanup.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(frozen=True)
class CleanupAction:
    order: int
    name: str
    action: Callable[..., Any]
    best_effort: bool = True


@dataclass(frozen=True)
class CleanupFailure:
    order: int
    name: str
    error: BaseException
    best_effort: bool = True

    @property
    def message(self) -> str:
        return f"{self.name}: {self.error}"
