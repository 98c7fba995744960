"""CLI entrypoint for tasks-maint."""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

import rich_click as click

from tasks_maint import __version__
from tasks_maint.config import Settings
from tasks_maint.errors import TasksMaintError
from tasks_maint.scenarios.controllers import (
    ScenarioCliController,
    ScenarioListCommand,
    ScenarioRunCommand,
    ScenarioShowCommand,
)
from tasks_maint.tasks.controllers import (
    TasksBackupCommand,
    TasksCliController,
    TasksCountCommand,
    TasksDeleteCommand,
    TasksListCommand,
    TasksPausedCommand,
    TasksRunningCommand,
    TasksWaitCommand,
)
from tasks_maint.tasks.models import CONDITION_STATES
from tasks_maint.tasks.polling import SUPPORTED_DRAIN_STATES

SCENARIO_STATES = tuple(dict.fromkeys((*CONDITION_STATES, *SUPPORTED_DRAIN_STATES)))

click.rich_click.USE_MARKDOWN = True
TASKS_CONTROLLER = TasksCliController()
SCENARIO_CONTROLLER = ScenarioCliController()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

db_url_option = click.option(
    "--db-url",
    default=None,
    help="SQLAlchemy database URL. Defaults to TASKS_MAINT_DB_URL.",
)
condition_state_option = click.option(
    "--state",
    type=click.Choice(CONDITION_STATES),
    default="old",
    show_default=True,
    help="Logical task state.",
)


@click.group()
@click.version_option(version=__version__, prog_name="tasks-maint")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level. Defaults to TASKS_MAINT_LOG_LEVEL or WARNING.",
)
def tasks_maint(log_level: str | None) -> None:
    """Maintenance of background tasks and content scenarios."""

    with _operator_errors():
        settings = Settings.from_env()
    _configure_logging((log_level or settings.log_level).upper(), settings.log_file)


@tasks_maint.group()
def tasks() -> None:
    """Task store commands."""


@tasks.command("count")
@db_url_option
@condition_state_option
@click.option(
    "--deletable",
    is_flag=True,
    help="Only count tasks whose labels are safe to delete.",
)
def tasks_count(db_url: str | None, state: str, deletable: bool) -> None:
    """Count tasks in a logical state (`old`, `paused`, `planning`, `pending`)."""

    with _operator_errors():
        lines = TASKS_CONTROLLER.count(
            TasksCountCommand(db_url=db_url, state=state, deletable=deletable),
        )
    _emit_lines(lines)


@tasks.command("running")
@db_url_option
def tasks_running(db_url: str | None) -> None:
    """Count running tasks, ignoring perpetual background jobs."""

    with _operator_errors():
        lines = TASKS_CONTROLLER.running(TasksRunningCommand(db_url=db_url))
    _emit_lines(lines)


@tasks.command("paused")
@db_url_option
@click.option(
    "--ignore-label",
    "ignore_labels",
    multiple=True,
    help="Task label to leave out of the count. Can be repeated.",
)
def tasks_paused(db_url: str | None, ignore_labels: tuple[str, ...]) -> None:
    """Count paused tasks that ended in error."""

    with _operator_errors():
        lines = TASKS_CONTROLLER.paused(
            TasksPausedCommand(db_url=db_url, ignore_labels=ignore_labels),
        )
    _emit_lines(lines)


@tasks.command("list")
@db_url_option
@condition_state_option
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=1000),
    default=50,
    show_default=True,
    help="Max number of tasks to print.",
)
@click.option(
    "--deletable",
    is_flag=True,
    help="Only list tasks whose labels are safe to delete.",
)
def tasks_list(db_url: str | None, state: str, limit: int, deletable: bool) -> None:
    """List tasks in a logical state, oldest first."""

    with _operator_errors():
        lines = TASKS_CONTROLLER.list_tasks(
            TasksListCommand(db_url=db_url, state=state, limit=limit, deletable=deletable),
        )
    _emit_lines(lines)


@tasks.command("backup")
@db_url_option
@condition_state_option
def tasks_backup(db_url: str | None, state: str) -> None:
    """Export deletable tasks and their execution plans as bzip2 CSV files."""

    with _operator_errors():
        lines = TASKS_CONTROLLER.backup(TasksBackupCommand(db_url=db_url, state=state))
    _emit_lines(lines)


@tasks.command("delete")
@db_url_option
@condition_state_option
@click.option("--assumeyes", "-y", "assume_yes", is_flag=True, help="Do not ask for confirmation.")
@click.option(
    "--backup/--no-backup",
    default=True,
    show_default=True,
    help="Back up the tasks before deleting them.",
)
def tasks_delete(db_url: str | None, state: str, assume_yes: bool, backup: bool) -> None:
    """Delete deletable tasks and their dependent rows in one transaction."""

    with _operator_errors():
        lines = TASKS_CONTROLLER.delete(
            TasksDeleteCommand(db_url=db_url, state=state, assume_yes=assume_yes, backup=backup),
        )
    _emit_lines(lines)


@tasks.command("wait")
@db_url_option
@click.option(
    "--state",
    type=click.Choice(SUPPORTED_DRAIN_STATES),
    default="running",
    show_default=True,
    help="State that must drain to zero.",
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Overall wait in seconds. Defaults to TASKS_MAINT_WAIT_TIMEOUT_SECONDS.",
)
@click.option(
    "--interval",
    "interval_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between polls. Defaults to TASKS_MAINT_RETRY_INTERVAL_SECONDS.",
)
def tasks_wait(
    db_url: str | None,
    state: str,
    timeout_seconds: float | None,
    interval_seconds: float | None,
) -> None:
    """Wait until no tasks remain in the given state."""

    with _operator_errors():
        result = TASKS_CONTROLLER.wait(
            TasksWaitCommand(
                db_url=db_url,
                state=state,
                timeout_seconds=timeout_seconds,
                interval_seconds=interval_seconds,
            ),
        )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(f"{state} tasks did not drain.")


@tasks_maint.command("capabilities")
def capabilities() -> None:
    """Show detected capabilities and their versions."""

    with _operator_errors():
        lines = SCENARIO_CONTROLLER.capabilities()
    _emit_lines(lines)


@tasks_maint.group()
def scenario() -> None:
    """Scenario commands."""


@scenario.command("list")
@click.option("--tag", default=None, help="Only scenarios carrying this tag.")
@click.option(
    "--detected",
    "detected_only",
    is_flag=True,
    help="Only scenarios that apply to this installation and are not manual.",
)
def scenario_list(tag: str | None, detected_only: bool) -> None:
    """List known scenarios and their parameters."""

    with _operator_errors():
        lines = SCENARIO_CONTROLLER.list_scenarios(
            ScenarioListCommand(tag=tag, detected_only=detected_only),
        )
    _emit_lines(lines)


SCENARIO_PARAM_OPTIONS = (
    click.option(
        "--assumeyes",
        "-y",
        "assumeyes",
        is_flag=True,
        help="Do not ask for confirmation.",
    ),
    click.option(
        "--remove-files",
        is_flag=True,
        help="Actually remove files instead of a dry run.",
    ),
    click.option("--quiet", "-q", is_flag=True, help="Keep the output short."),
    click.option(
        "--state",
        type=click.Choice(SCENARIO_STATES),
        default=None,
        help="Task state for task scenarios; each step validates its own states.",
    ),
)


def scenario_param_options(command: Callable[..., None]) -> Callable[..., None]:
    for option in reversed(SCENARIO_PARAM_OPTIONS):
        command = option(command)
    return command


@scenario.command("show")
@click.argument("label")
@scenario_param_options
def scenario_show(
    label: str,
    assumeyes: bool,
    remove_files: bool,
    quiet: bool,
    state: str | None,
) -> None:
    """Show the steps a scenario composes to on this installation."""

    params = _scenario_params(
        assumeyes=assumeyes,
        remove_files=remove_files,
        quiet=quiet,
        state=state,
    )
    with _operator_errors():
        lines = SCENARIO_CONTROLLER.show(ScenarioShowCommand(label=label, params=params))
    _emit_lines(lines)


@scenario.command("run")
@click.argument("label")
@db_url_option
@scenario_param_options
def scenario_run(  # noqa: PLR0913
    label: str,
    db_url: str | None,
    assumeyes: bool,
    remove_files: bool,
    quiet: bool,
    state: str | None,
) -> None:
    """Run a scenario; the first failing step aborts the remaining ones."""

    params = _scenario_params(
        assumeyes=assumeyes,
        remove_files=remove_files,
        quiet=quiet,
        state=state,
    )
    with _operator_errors():
        result = SCENARIO_CONTROLLER.run(
            ScenarioRunCommand(label=label, db_url=db_url, params=params),
        )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(f"Scenario {label} aborted.")


def _scenario_params(**given: object) -> dict[str, object]:
    # Flags left off and unset options are not passed to the scenario at all.
    return {name: value for name, value in given.items() if value not in (None, False)}


@contextmanager
def _operator_errors() -> Iterator[None]:
    try:
        yield
    except (TasksMaintError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _configure_logging(level: str, log_file: Path | None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    tasks_maint()
