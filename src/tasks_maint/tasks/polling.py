"""Bounded polling until a task state drains to zero."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from tasks_maint.errors import ServiceUnavailableError, UnsupportedStateError
from tasks_maint.tasks.store import ProgressCallback, TaskStore

logger = logging.getLogger(__name__)

SUPPORTED_DRAIN_STATES = ("running", "paused")

StateCounter = Callable[[], int]


class DrainOutcome(str, Enum):
    DRAINED = "drained"
    TIMED_OUT = "timed_out"
    ERROR = "error"


@dataclass(slots=True)
class DrainResult:
    """How a drain wait ended; callers branch on ``outcome``."""

    state: str
    outcome: DrainOutcome
    polls: int
    sleeps: int
    last_count: int | None = None
    error_kind: str | None = None
    error: str | None = None

    @property
    def drained(self) -> bool:
        return self.outcome is DrainOutcome.DRAINED


def bind_state_counter(store: TaskStore, state: str) -> StateCounter:
    """Pick the counting method for a drainable state.

    Only ``running`` and ``paused`` have counting semantics; anything else is
    a configuration error reported before any polling starts.
    """

    if state == "running":
        return store.running_count
    if state == "paused":
        return store.paused_error_count
    logger.error("No count method defined for state %s.", state)
    raise UnsupportedStateError(state, supported=SUPPORTED_DRAIN_STATES)


def await_state_drain(  # noqa: PLR0913
    state: str,
    count_fn: StateCounter,
    *,
    interval_seconds: float,
    timeout_seconds: float,
    on_progress: ProgressCallback | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> DrainResult:
    """Poll ``count_fn`` until it reports zero or the overall deadline passes.

    A sleep that would end past the deadline is not started. Counter errors
    are logged and end the wait with an ``ERROR`` outcome instead of raising.
    """

    report = on_progress or _ignore_progress
    deadline = clock() + timeout_seconds
    polls = 0
    sleeps = 0
    last_count: int | None = None

    while True:
        report(f"Try checking status of {state} task(s)")
        try:
            last_count = count_fn()
        except ServiceUnavailableError as error:
            logger.error("Cannot count %s tasks: %s", state, error)
            return DrainResult(
                state=state,
                outcome=DrainOutcome.ERROR,
                polls=polls,
                sleeps=sleeps,
                last_count=last_count,
                error_kind="service_unavailable",
                error=str(error),
            )
        except Exception as error:  # noqa: BLE001
            logger.error("Counting %s tasks failed: %s", state, error)
            return DrainResult(
                state=state,
                outcome=DrainOutcome.ERROR,
                polls=polls,
                sleeps=sleeps,
                last_count=last_count,
                error_kind="unexpected",
                error=str(error),
            )
        polls += 1

        if last_count == 0:
            return DrainResult(
                state=state,
                outcome=DrainOutcome.DRAINED,
                polls=polls,
                sleeps=sleeps,
                last_count=0,
            )

        report(f"There are {last_count} {state} tasks.")
        if clock() + interval_seconds > deadline:
            logger.warning(
                "Timeout: %s tasks did not drain within %g seconds. Try again.",
                state,
                timeout_seconds,
            )
            return DrainResult(
                state=state,
                outcome=DrainOutcome.TIMED_OUT,
                polls=polls,
                sleeps=sleeps,
                last_count=last_count,
            )
        report(f"Waiting {interval_seconds:g} seconds before retry.")
        sleep(interval_seconds)
        sleeps += 1


def _ignore_progress(_: str) -> None:
    return None
