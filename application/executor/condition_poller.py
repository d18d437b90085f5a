# application/executor/condition_poller.py
from __future__ import annotations

from typing import Any, Callable, Optional

from application.ports.clock import ClockPort
from application.ports.logger import LoggerPort
from domain.cancellation import CancelToken
from domain.exceptions import FlowCancelledError, TransientError, WaitTimeoutError
from domain.policies import PollSpec


class ConditionPoller:
    """
    Evaluates a probe immediately and then every ``spec.interval_sec`` until it
    reports done, raises a terminal error, or ``spec.timeout_sec`` elapses.

    A probe signals "not yet" by returning False or raising TransientError.
    Any other exception is terminal and is re-raised as is. Deciding which
    observed errors are fatal is the probe's job.
    """

    def __init__(self, clock: ClockPort, logger: LoggerPort):
        self._clock = clock
        self._logger = logger

    def poll(
        self,
        probe: Callable[[], bool],
        spec: PollSpec,
        cancel: Optional[CancelToken] = None,
        description: str = "",
    ) -> int:
        """Returns the number of probe invocations it took."""
        return self._run(probe, spec, cancel, description, swallow_all=False)

    def poll_until_succeeds(
        self,
        operation: Callable[[], Any],
        spec: PollSpec,
        cancel: Optional[CancelToken] = None,
        description: str = "",
    ) -> int:
        """Every exception from ``operation`` means "not yet"; the last one is kept for the timeout error."""

        def probe() -> bool:
            operation()
            return True

        return self._run(probe, spec, cancel, description, swallow_all=True)

    def _run(
        self,
        probe: Callable[[], bool],
        spec: PollSpec,
        cancel: Optional[CancelToken],
        description: str,
        swallow_all: bool,
    ) -> int:
        deadline = self._clock.monotonic() + spec.timeout_sec
        attempts = 0
        last_error: Optional[BaseException] = None

        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()

            attempts += 1
            try:
                done = bool(probe())
            except FlowCancelledError:
                raise
            except TransientError as exc:
                done = False
                last_error = exc
            except Exception as exc:
                if not swallow_all:
                    raise
                done = False
                last_error = exc

            if done:
                self._logger.debug("poll.done", description=description, attempts=attempts)
                return attempts

            if cancel is not None:
                cancel.raise_if_cancelled()

            now = self._clock.monotonic()
            if now >= deadline:
                self._logger.error(
                    "poll.timeout",
                    description=description,
                    attempts=attempts,
                    timeout_sec=spec.timeout_sec,
                    last_error=str(last_error) if last_error is not None else None,
                )
                raise WaitTimeoutError(description, spec.timeout_sec, attempts, last_error)

            wait_sec = min(spec.interval_sec, deadline - now)
            self._logger.debug(
                "poll.waiting",
                description=description,
                attempt=attempts,
                wait_sec=wait_sec,
                last_error=str(last_error) if last_error is not None else None,
            )
            self._clock.sleep(wait_sec, cancel)
