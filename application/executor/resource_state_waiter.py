# application/executor/resource_state_waiter.py
from __future__ import annotations

from typing import Callable, Optional

from application.executor.condition_poller import ConditionPoller
from application.ports.logger import LoggerPort
from domain.cancellation import CancelToken
from domain.exceptions import FlowCancelledError, TerminalError, TransientError
from domain.policies import PollSpec
from domain.resource_state import ProvisioningState


def _default_is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, TransientError)


class ResourceStateWaiter:
    """
    Waits until a fetched resource state equals ``target``.

    Each poll tick fetches exactly once and compares for equality; states are
    not assumed to move monotonically. ``is_retryable`` decides which fetch
    errors mean "not there yet" (default: TransientError, which includes
    ResourceNotFoundError). Everything else aborts the wait; a rejected
    TransientError is re-raised as TerminalError chained to it.
    """

    def __init__(self, poller: ConditionPoller, logger: LoggerPort):
        self._poller = poller
        self._logger = logger

    def wait_for_state(
        self,
        fetch: Callable[[], ProvisioningState],
        target: ProvisioningState,
        spec: PollSpec,
        is_retryable: Optional[Callable[[BaseException], bool]] = None,
        cancel: Optional[CancelToken] = None,
        description: str = "",
    ) -> int:
        classify = is_retryable or _default_is_retryable
        observed = {"state": None}

        def probe() -> bool:
            try:
                state = fetch()
            except FlowCancelledError:
                raise
            except Exception as exc:
                if classify(exc):
                    self._logger.debug("state.fetch_retryable", description=description, error=str(exc))
                    return False
                if isinstance(exc, TransientError):
                    # the poller would keep swallowing it
                    raise TerminalError(f"{description or target.value}: {exc}") from exc
                raise

            if state != observed["state"]:
                self._logger.info(
                    "state.observed",
                    description=description,
                    state=getattr(state, "value", state),
                    target=target.value,
                )
                observed["state"] = state
            return state == target

        return self._poller.poll(
            probe,
            spec,
            cancel=cancel,
            description=description or f"state {target.value!r}",
        )
