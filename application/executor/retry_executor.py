# application/executor/retry_executor.py
from __future__ import annotations

from typing import Callable, Optional, TypeVar

from application.ports.clock import ClockPort
from application.ports.logger import LoggerPort
from domain.cancellation import CancelToken
from domain.exceptions import FlowCancelledError
from domain.policies import RetryPolicy

T = TypeVar("T")


class RetryExecutor:
    """
    Runs an operation up to ``policy.max_attempts`` times.

    Failures are not interpreted: any exception except cancellation triggers
    another attempt while attempts remain. Operations must be safe to re-run.
    """

    def __init__(self, clock: ClockPort, logger: LoggerPort):
        self._clock = clock
        self._logger = logger

    def execute(
        self,
        op: Callable[[], T],
        policy: RetryPolicy,
        cancel: Optional[CancelToken] = None,
        description: str = "",
    ) -> T:
        attempt = 0
        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()

            attempt += 1
            try:
                return op()
            except FlowCancelledError:
                raise
            except Exception as exc:
                if attempt >= policy.max_attempts:
                    self._logger.error(
                        "retry.exhausted",
                        description=description,
                        attempts=attempt,
                        error=str(exc),
                    )
                    raise

                wait_sec = policy.backoff.delay_for(attempt)
                self._logger.warning(
                    "retry.attempt_failed",
                    description=description,
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    wait_sec=wait_sec,
                    error=str(exc),
                )
                if wait_sec > 0:
                    self._clock.sleep(wait_sec, cancel)
