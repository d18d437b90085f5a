# domain/policies.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Union

from domain.durations import parse_duration
from domain.exceptions import ValidationError


class BackoffKind(str, Enum):
    NONE = "none"
    FIXED = "fixed"
    SCHEDULE = "schedule"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Backoff:
    kind: BackoffKind = BackoffKind.NONE
    delay_sec: float = 0.0
    schedule_sec: List[float] = field(default_factory=list)
    fn: Optional[Callable[[int], float]] = None

    @classmethod
    def none(cls) -> "Backoff":
        return cls()

    @classmethod
    def fixed(cls, delay_sec: float) -> "Backoff":
        if delay_sec < 0:
            raise ValidationError(f"backoff delay must be >= 0: {delay_sec}")
        return cls(kind=BackoffKind.FIXED, delay_sec=float(delay_sec))

    @classmethod
    def schedule(cls, delays_sec: Sequence[float]) -> "Backoff":
        if any(d < 0 for d in delays_sec):
            raise ValidationError(f"backoff delays must be >= 0: {list(delays_sec)}")
        return cls(kind=BackoffKind.SCHEDULE, schedule_sec=[float(d) for d in delays_sec])

    @classmethod
    def custom(cls, fn: Callable[[int], float]) -> "Backoff":
        return cls(kind=BackoffKind.CUSTOM, fn=fn)

    def delay_for(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt`` (1-based)."""
        if self.kind == BackoffKind.FIXED:
            return self.delay_sec
        if self.kind == BackoffKind.SCHEDULE:
            if not self.schedule_sec:
                return 0.0
            # past the end of the schedule the last delay repeats
            idx = min(attempt - 1, len(self.schedule_sec) - 1)
            return self.schedule_sec[idx]
        if self.kind == BackoffKind.CUSTOM and self.fn is not None:
            return max(0.0, float(self.fn(attempt)))
        return 0.0


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 1
    backoff: Backoff = field(default_factory=Backoff)

    def __post_init__(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise ValidationError(f"max_attempts must be an integer: {self.max_attempts!r}")
        if self.max_attempts < 1:
            raise ValidationError(f"max_attempts must be >= 1: {self.max_attempts}")


@dataclass(frozen=True)
class PollSpec:
    interval_sec: float
    timeout_sec: float

    def __post_init__(self) -> None:
        if self.interval_sec <= 0:
            raise ValidationError(f"interval must be > 0: {self.interval_sec}")
        if self.timeout_sec < self.interval_sec:
            raise ValidationError(
                f"timeout ({self.timeout_sec}) must be >= interval ({self.interval_sec})"
            )

    @classmethod
    def from_intervals(cls, intervals: Sequence[Union[str, float]]) -> "PollSpec":
        """Build from a ``[timeout, interval]`` pair, e.g. ``["10m", "10s"]``."""
        if len(intervals) != 2:
            raise ValidationError(f"intervals must be [timeout, interval]: {list(intervals)}")
        timeout, interval = intervals
        return cls(interval_sec=parse_duration(interval), timeout_sec=parse_duration(timeout))
