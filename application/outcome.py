from dataclasses import dataclass
from typing import Any, Optional

@dataclass(frozen=True)
class StepOutcome:
    ok: bool
    value: Any = None
    polls: int = 0  # probe invocations for polling steps
    error_message: Optional[str] = None
