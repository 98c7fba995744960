"""Health checks on task records, grouped by tag."""

from __future__ import annotations

from tasks_maint.errors import CheckFailedError
from tasks_maint.scenarios.base import Procedure
from tasks_maint.scenarios.runtime import StepRuntime


class Check(Procedure):
    """Procedure that inspects state without changing it."""


class TasksNotRunningCheck(Check):
    label = "foreman-tasks-not-running"
    description = "Check for running tasks"
    tags = frozenset({"pre_upgrade"})

    def run(self, runtime: StepRuntime) -> None:
        count = runtime.tasks.running_count()
        if count:
            raise CheckFailedError(
                f"There are {count} active task(s) in the system. "
                "Please wait for these to complete or cancel them.",
            )


class TasksNotPausedCheck(Check):
    label = "foreman-tasks-not-paused"
    description = "Check for paused tasks"
    tags = frozenset({"pre_upgrade"})

    def run(self, runtime: StepRuntime) -> None:
        count = runtime.tasks.paused_error_count()
        if count:
            raise CheckFailedError(
                f"There are {count} paused task(s) in the system. "
                "Resume or delete them before upgrading.",
            )


class _TaskCountCheck(Check):
    state = ""
    tags = frozenset({"basic"})

    def run(self, runtime: StepRuntime) -> None:
        count = runtime.tasks.count(self.state)
        if count:
            self.warn(f"There are {count} {self.state} task(s) in the system.")


class OldTasksCheck(_TaskCountCheck):
    label = "check-old-foreman-tasks"
    description = "Check for old tasks in paused/stopped state"
    state = "old"


class PendingTasksCheck(_TaskCountCheck):
    label = "check-pending-foreman-tasks"
    description = "Check for pending tasks"
    state = "pending"


class PlanningTasksCheck(_TaskCountCheck):
    label = "check-planning-foreman-tasks"
    description = "Check for tasks in planning state"
    state = "planning"


CHECKS: tuple[type[Check], ...] = (
    OldTasksCheck,
    PendingTasksCheck,
    PlanningTasksCheck,
    TasksNotRunningCheck,
    TasksNotPausedCheck,
)


def find_checks(tag: str) -> tuple[type[Check], ...]:
    return tuple(check for check in CHECKS if tag in check.tags)
