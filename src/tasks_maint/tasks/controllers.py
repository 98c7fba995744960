"""Controllers for task CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from tasks_maint.capabilities import build_registry
from tasks_maint.config import Settings
from tasks_maint.errors import ConfirmationDeclinedError, IncompleteDeleteError
from tasks_maint.reporting import ConsoleReporter, Reporter
from tasks_maint.runner import CommandRunner
from tasks_maint.storage.database import TaskDatabase
from tasks_maint.tasks.models import ConditionScope, TaskPolicy
from tasks_maint.tasks.polling import await_state_drain, bind_state_counter
from tasks_maint.tasks.store import TaskStore


@dataclass(slots=True)
class TasksCountCommand:
    """CLI inputs for counting tasks by logical state."""

    db_url: str | None
    state: str
    deletable: bool = False


@dataclass(slots=True)
class TasksRunningCommand:
    db_url: str | None


@dataclass(slots=True)
class TasksPausedCommand:
    db_url: str | None
    ignore_labels: tuple[str, ...] = ()


@dataclass(slots=True)
class TasksListCommand:
    """CLI inputs for listing tasks matching a condition."""

    db_url: str | None
    state: str
    limit: int
    deletable: bool = False


@dataclass(slots=True)
class TasksDeleteCommand:
    db_url: str | None
    state: str
    assume_yes: bool
    backup: bool = True


@dataclass(slots=True)
class TasksBackupCommand:
    db_url: str | None
    state: str


@dataclass(slots=True)
class TasksWaitCommand:
    """CLI inputs for waiting until running or paused tasks drain."""

    db_url: str | None
    state: str
    timeout_seconds: float | None = None
    interval_seconds: float | None = None


@dataclass(slots=True)
class TasksWaitResult:
    lines: list[str] = field(default_factory=list)
    success: bool = False


class TasksCliController:
    """Coordinates task store commands."""

    def __init__(self, reporter: Reporter | None = None) -> None:
        self.reporter = reporter or ConsoleReporter()

    def count(self, command: TasksCountCommand) -> list[str]:
        settings = _settings(command.db_url)
        scope = ConditionScope.DELETE if command.deletable else ConditionScope.COUNT
        with _task_store(settings) as store:
            condition = store.condition(command.state, scope=scope)
            count = store.count(command.state, scope=scope)
        return [f"{command.state} tasks: {count}", f"Condition: {condition}"]

    def running(self, command: TasksRunningCommand) -> list[str]:
        with _task_store(_settings(command.db_url)) as store:
            count = store.running_count()
        return [f"running tasks: {count}"]

    def paused(self, command: TasksPausedCommand) -> list[str]:
        with _task_store(_settings(command.db_url)) as store:
            count = store.paused_error_count(command.ignore_labels)
        return [f"paused tasks with errors: {count}"]

    def list_tasks(self, command: TasksListCommand) -> list[str]:
        settings = _settings(command.db_url)
        scope = ConditionScope.DELETE if command.deletable else ConditionScope.COUNT
        with _task_store(settings) as store:
            tasks = store.list_tasks(command.state, scope=scope, limit=command.limit)
        if not tasks:
            return [f"No {command.state} tasks found."]
        lines = [f"{command.state} tasks (showing {len(tasks)}):"]
        for task in tasks:
            started_at = task.started_at.isoformat(sep=" ") if task.started_at else "-"
            lines.append(
                f"  {task.id} state={task.state} result={task.result} "
                f"started_at={started_at} label={task.label or '-'}",
            )
        return lines

    def backup(self, command: TasksBackupCommand) -> list[str]:
        with _task_store(_settings(command.db_url)) as store:
            result = store.backup(command.state, on_progress=self.reporter.progress)
        return [
            f"Backup of {result.state} tasks saved to {result.directory}",
            *(f"  {path.name}" for path in result.files),
        ]

    def delete(self, command: TasksDeleteCommand) -> list[str]:
        lines: list[str] = []
        with _task_store(_settings(command.db_url)) as store:
            count = store.count(command.state, scope=ConditionScope.DELETE)
            if count == 0:
                return [f"No {command.state} tasks to delete."]
            if not command.assume_yes and not self.reporter.confirm(
                f"Delete {count} {command.state} task(s)?",
            ):
                raise ConfirmationDeclinedError(f"Deletion of {command.state} tasks declined.")
            if command.backup:
                result = store.backup(command.state, on_progress=self.reporter.progress)
                lines.append(f"Backup saved to {result.directory}")
            remaining = store.delete(command.state)
        if remaining:
            raise IncompleteDeleteError(command.state, remaining)
        lines.append(f"Deleted {count} {command.state} task(s).")
        return lines

    def wait(self, command: TasksWaitCommand) -> TasksWaitResult:
        settings = _settings(command.db_url)
        timeout_seconds = command.timeout_seconds or settings.tasks.wait_timeout_seconds
        interval_seconds = command.interval_seconds or settings.tasks.retry_interval_seconds
        with _task_store(settings) as store:
            result = await_state_drain(
                command.state,
                bind_state_counter(store, command.state),
                interval_seconds=interval_seconds,
                timeout_seconds=timeout_seconds,
                on_progress=self.reporter.progress,
            )
        if result.drained:
            lines = [f"No {command.state} tasks left (polls={result.polls})."]
        elif result.error is not None:
            lines = [f"Could not check {command.state} tasks: {result.error}"]
        else:
            lines = [
                f"Timeout: {result.last_count} {command.state} task(s) still present "
                f"after {timeout_seconds:g} seconds. Try again.",
            ]
        return TasksWaitResult(lines=lines, success=result.drained)


def _settings(db_url: str | None) -> Settings:
    settings = Settings.from_env(db_url=db_url)
    settings.validate()
    return settings


@contextmanager
def _task_store(settings: Settings) -> Iterator[TaskStore]:
    runner = CommandRunner()
    capabilities = build_registry(settings.capabilities, runner).snapshot()
    database = TaskDatabase(settings.db_url)
    try:
        yield TaskStore(
            database,
            capabilities=capabilities,
            backup_root=settings.backup_dir,
            policy=TaskPolicy.from_settings(settings.tasks),
        )
    finally:
        database.close()
