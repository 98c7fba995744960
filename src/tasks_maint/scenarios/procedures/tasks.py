"""Procedures acting on task records through the task store."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from tasks_maint.capabilities import Capability
from tasks_maint.errors import (
    ConfirmationDeclinedError,
    IncompleteDeleteError,
    InvalidStateError,
    UnsupportedStateError,
)
from tasks_maint.scenarios.base import Procedure
from tasks_maint.scenarios.runtime import StepRuntime
from tasks_maint.tasks.models import CONDITION_STATES, ConditionScope
from tasks_maint.tasks.polling import SUPPORTED_DRAIN_STATES, await_state_drain, bind_state_counter


def _check_condition_state(arguments: Mapping[str, Any]) -> None:
    state = arguments.get("state", "old")
    if state not in CONDITION_STATES:
        raise InvalidStateError(str(state), supported=CONDITION_STATES)


class TasksBackup(Procedure):
    label = "backup-tasks"
    description = "Backup tasks"

    def __init__(self, *, state: str = "old") -> None:
        super().__init__()
        self.state = state

    @classmethod
    def check_arguments(cls, arguments: Mapping[str, Any]) -> None:
        _check_condition_state(arguments)

    def run(self, runtime: StepRuntime) -> None:
        result = runtime.tasks.backup(self.state, on_progress=runtime.reporter.progress)
        runtime.reporter.info(f"Backup of {self.state} tasks saved to {result.directory}")


class TasksDelete(Procedure):
    label = "delete-tasks"
    description = "Delete tasks"

    def __init__(self, *, state: str = "old", assumeyes: bool = False) -> None:
        super().__init__()
        self.state = state
        self.assumeyes = assumeyes

    @classmethod
    def check_arguments(cls, arguments: Mapping[str, Any]) -> None:
        _check_condition_state(arguments)

    def run(self, runtime: StepRuntime) -> None:
        store = runtime.tasks
        count = store.count(self.state, scope=ConditionScope.DELETE)
        if count == 0:
            runtime.reporter.info(f"No {self.state} tasks to delete.")
            return
        if not self.assumeyes and not runtime.reporter.confirm(
            f"Delete {count} {self.state} task(s)?",
        ):
            raise ConfirmationDeclinedError(f"Deletion of {self.state} tasks declined.")

        remaining = store.delete(self.state)
        if remaining:
            raise IncompleteDeleteError(self.state, remaining)
        runtime.reporter.info(f"Deleted {count} {self.state} task(s).")


class TasksWaitForDrain(Procedure):
    label = "wait-for-tasks"
    description = "Wait for tasks to finish"

    def __init__(self, *, state: str = "running") -> None:
        super().__init__()
        self.state = state

    @classmethod
    def check_arguments(cls, arguments: Mapping[str, Any]) -> None:
        state = arguments.get("state", "running")
        if state not in SUPPORTED_DRAIN_STATES:
            raise UnsupportedStateError(str(state), supported=SUPPORTED_DRAIN_STATES)

    def run(self, runtime: StepRuntime) -> None:
        settings = runtime.settings.tasks
        result = await_state_drain(
            self.state,
            bind_state_counter(runtime.tasks, self.state),
            interval_seconds=settings.retry_interval_seconds,
            timeout_seconds=settings.wait_timeout_seconds,
            on_progress=runtime.reporter.progress,
        )
        if result.drained:
            runtime.reporter.info(f"No {self.state} tasks left.")
        elif result.error is not None:
            self.warn(f"Could not check {self.state} tasks: {result.error}")
        else:
            self.warn(
                f"Timeout: {result.last_count} {self.state} task(s) still present. Try again.",
            )


class TasksResume(Procedure):
    label = "resume-tasks"
    description = "Resume paused tasks"

    def run(self, runtime: StepRuntime) -> None:
        runtime.reporter.info(runtime.runner.execute_checked(resume_command(runtime)))


def resume_command(runtime: StepRuntime) -> str:
    # Satellite 6.8 hammer requires an explicit search to resume all tasks.
    if runtime.capabilities.minor_version(Capability.SATELLITE) == "6.8":
        return 'hammer task resume --search "" --fields="Total tasks resumed"'
    return 'hammer task resume --fields="Total tasks resumed"'
