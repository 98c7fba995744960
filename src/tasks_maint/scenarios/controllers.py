"""Controllers for scenario and capability CLI commands."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from tasks_maint.capabilities import CapabilitySnapshot, build_registry, tasks_service_names
from tasks_maint.config import Settings
from tasks_maint.reporting import ConsoleReporter, Reporter
from tasks_maint.runner import CommandRunner
from tasks_maint.scenarios.base import Composition, ScenarioContext, compose_scenario
from tasks_maint.scenarios.executor import ScenarioExecutor, StepStatus
from tasks_maint.scenarios.registry import all_scenarios, detect_scenarios, find_scenario
from tasks_maint.scenarios.runtime import StepRuntime
from tasks_maint.storage.database import TaskDatabase
from tasks_maint.tasks.models import TaskPolicy
from tasks_maint.tasks.store import TaskStore


@dataclass(slots=True)
class ScenarioListCommand:
    """CLI inputs for listing scenarios."""

    tag: str | None = None
    detected_only: bool = False


@dataclass(slots=True)
class ScenarioShowCommand:
    label: str
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ScenarioRunCommand:
    """CLI inputs for running one scenario."""

    label: str
    db_url: str | None = None
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ScenarioRunCommandResult:
    lines: list[str] = field(default_factory=list)
    success: bool = False


class ScenarioCliController:
    """Coordinates scenario listing, composition and execution."""

    def __init__(self, reporter: Reporter | None = None) -> None:
        self.reporter = reporter or ConsoleReporter()

    def capabilities(self) -> list[str]:
        snapshot = _capabilities(Settings.from_env())
        services = tasks_service_names(snapshot)
        return [
            "Detected capabilities:",
            *snapshot.describe(),
            f"Task services: {', '.join(services) if services else '-'}",
        ]

    def list_scenarios(self, command: ScenarioListCommand) -> list[str]:
        if command.detected_only:
            scenarios = detect_scenarios(_capabilities(Settings.from_env()), command.tag)
        else:
            scenarios = [
                scenario
                for scenario in all_scenarios()
                if command.tag is None or command.tag in scenario.metadata.tags
            ]
        if not scenarios:
            return ["No scenarios found."]
        lines = []
        for scenario in scenarios:
            metadata = scenario.metadata
            suffix = " (manual)" if metadata.manual_detection else ""
            lines.append(f"{metadata.label}{suffix}: {metadata.description}")
            lines.extend(
                f"    --{param.name.replace('_', '-')}{'' if param.flag else ' VALUE'}: "
                f"{param.description}"
                for param in metadata.params
            )
        return lines

    def show(self, command: ScenarioShowCommand) -> list[str]:
        settings = Settings.from_env()
        composition = _compose(
            settings,
            _capabilities(settings),
            command.label,
            command.params,
        )
        lines = [f"{composition.label}: {composition.description}"]
        if not composition.confined:
            lines.append("Scenario does not apply to this installation.")
            return lines
        if not composition.steps:
            lines.append("No steps for this installation.")
            return lines
        lines.extend(
            f"  {index}. {step.describe()}" for index, step in enumerate(composition.steps, 1)
        )
        return lines

    def run(self, command: ScenarioRunCommand) -> ScenarioRunCommandResult:
        settings = Settings.from_env(db_url=command.db_url)
        settings.validate()
        with _runtime(settings, self.reporter) as runtime:
            composition = _compose(
                settings,
                runtime.capabilities,
                command.label,
                command.params,
            )
            result = ScenarioExecutor(runtime).run(composition)

        lines = [f"Scenario {result.label}: {result.state.value}"]
        for step in result.steps:
            lines.append(f"  {step.label} [{step.status.value.upper()}]")
            if step.status is not StepStatus.SKIPPED:
                lines.extend(f"    {message}" for message in step.messages)
        return ScenarioRunCommandResult(lines=lines, success=result.ok)


def _compose(
    settings: Settings,
    capabilities: CapabilitySnapshot,
    label: str,
    params: Mapping[str, Any],
) -> Composition:
    scenario = find_scenario(label)
    return compose_scenario(
        scenario,
        capabilities=capabilities,
        context=ScenarioContext.for_scenario(scenario.metadata, params),
        settings=settings,
    )


def _capabilities(settings: Settings, runner: CommandRunner | None = None) -> CapabilitySnapshot:
    return build_registry(settings.capabilities, runner or CommandRunner()).snapshot()


@contextmanager
def _runtime(settings: Settings, reporter: Reporter) -> Iterator[StepRuntime]:
    runner = CommandRunner()
    capabilities = _capabilities(settings, runner)
    databases: list[TaskDatabase] = []

    def open_store() -> TaskStore:
        database = TaskDatabase(settings.db_url)
        databases.append(database)
        return TaskStore(
            database,
            capabilities=capabilities,
            backup_root=settings.backup_dir,
            policy=TaskPolicy.from_settings(settings.tasks),
        )

    try:
        yield StepRuntime(
            settings=settings,
            runner=runner,
            capabilities=capabilities,
            reporter=reporter,
            store_factory=open_store,
        )
    finally:
        for database in databases:
            database.close()
