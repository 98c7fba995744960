"""Lookup and automatic detection of scenarios."""

from __future__ import annotations

from tasks_maint.capabilities import CapabilitySnapshot
from tasks_maint.errors import ScenarioNotFoundError
from tasks_maint.scenarios.base import Scenario
from tasks_maint.scenarios.definitions.content import (
    CleanupRepositoryMetadataScenario,
    ContentMigrationResetScenario,
    ContentMigrationStatsScenario,
    ContentPrepareAbortScenario,
    ContentPrepareScenario,
    ContentSwitchoverScenario,
    FixPulpcoreArtifactOwnershipScenario,
    RemovePulp2Scenario,
)
from tasks_maint.scenarios.definitions.pre_upgrade import PreUpgradeCheckSatellite62z
from tasks_maint.scenarios.definitions.tasks import (
    TasksCleanupScenario,
    TasksResumeScenario,
    TasksWaitScenario,
)

ALL_SCENARIOS: tuple[type[Scenario], ...] = (
    ContentPrepareScenario,
    ContentSwitchoverScenario,
    ContentPrepareAbortScenario,
    ContentMigrationStatsScenario,
    ContentMigrationResetScenario,
    CleanupRepositoryMetadataScenario,
    RemovePulp2Scenario,
    FixPulpcoreArtifactOwnershipScenario,
    PreUpgradeCheckSatellite62z,
    TasksCleanupScenario,
    TasksResumeScenario,
    TasksWaitScenario,
)


def all_scenarios() -> tuple[type[Scenario], ...]:
    return ALL_SCENARIOS


def find_scenario(label: str) -> type[Scenario]:
    for scenario in ALL_SCENARIOS:
        if scenario.metadata.label == label:
            return scenario
    raise ScenarioNotFoundError(label)


def detect_scenarios(
    capabilities: CapabilitySnapshot,
    tag: str | None = None,
) -> list[type[Scenario]]:
    """Scenarios that apply here; manually detected ones are never returned."""

    return [
        scenario
        for scenario in ALL_SCENARIOS
        if not scenario.metadata.manual_detection
        and (tag is None or tag in scenario.metadata.tags)
        and scenario.confine(capabilities)
    ]
