"""Task cleanup and resume scenarios."""

from __future__ import annotations

from tasks_maint.capabilities import Capability, CapabilitySnapshot, tasks_service_names
from tasks_maint.scenarios.base import ContextMapping, Scenario, ScenarioMetadata, ScenarioParam
from tasks_maint.scenarios.procedures.service import ServicesEnableStart
from tasks_maint.scenarios.procedures.tasks import (
    TasksBackup,
    TasksDelete,
    TasksResume,
    TasksWaitForDrain,
)


class TasksCleanupScenario(Scenario):
    """Back up matching tasks, then delete them in one transaction."""

    metadata = ScenarioMetadata(
        label="tasks_cleanup",
        description="Backup and delete old, paused, planning or pending tasks",
        params=(
            ScenarioParam("state", "Task state to clean up (default: old)", flag=False),
            ScenarioParam("assumeyes", "Do not ask for confirmation"),
        ),
        manual_detection=True,
    )
    context_mappings = (
        ContextMapping("state", TasksBackup, "state"),
        ContextMapping("state", TasksDelete, "state"),
        ContextMapping("assumeyes", TasksDelete, "assumeyes"),
    )

    def compose(self) -> None:
        self.add_step_with_context(TasksBackup)
        self.add_step_with_context(TasksDelete)


class TasksResumeScenario(Scenario):
    metadata = ScenarioMetadata(
        label="tasks_resume",
        description="Resume paused tasks",
        manual_detection=True,
    )

    @classmethod
    def confine(cls, capabilities: CapabilitySnapshot) -> bool:
        return capabilities.has(Capability.HAMMER)

    def compose(self) -> None:
        services = tasks_service_names(self.capabilities)
        if services:
            self.add_step(ServicesEnableStart, services=tuple(services))
        self.add_step(TasksResume)


class TasksWaitScenario(Scenario):
    """Poll until no running (or paused) tasks are left, or the wait times out."""

    metadata = ScenarioMetadata(
        label="tasks_wait",
        description="Wait for running or paused tasks to finish",
        params=(ScenarioParam("state", "Task state to wait for (default: running)", flag=False),),
        manual_detection=True,
    )
    context_mappings = (ContextMapping("state", TasksWaitForDrain, "state"),)

    def compose(self) -> None:
        self.add_step_with_context(TasksWaitForDrain)
