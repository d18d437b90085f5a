# domain/exceptions.py
from __future__ import annotations

from typing import Optional


class FlowError(Exception):
    pass


class ValidationError(FlowError, ValueError):
    pass


class TransientError(FlowError):
    """Retryable failure. Swallowed by pollers and retry loops up to their limits."""


class ResourceNotFoundError(TransientError):
    """The resource does not exist (yet)."""


class TerminalError(FlowError):
    """Failure that must abort the flow immediately."""


class FlowCancelledError(FlowError):
    def __init__(self, reason: str = "cancelled"):
        super().__init__(reason)
        self.reason = reason


class WaitTimeoutError(FlowError, TimeoutError):
    def __init__(
        self,
        description: str,
        timeout_sec: float,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ):
        message = f"timed out after {timeout_sec:g}s waiting for {description or 'condition'} ({attempts} attempts)"
        if last_error is not None:
            message += f": last error: {last_error}"
        super().__init__(message)
        self.description = description
        self.timeout_sec = timeout_sec
        self.attempts = attempts
        self.last_error = last_error


class StepFailedError(FlowError):
    def __init__(self, step_id: str, cause: BaseException):
        super().__init__(f"step '{step_id}' failed: {cause}")
        self.step_id = step_id
        self.cause = cause
