"""Pulp 2 to Pulp 3 content migration scenarios."""

from __future__ import annotations

from tasks_maint.capabilities import Capability
from tasks_maint.scenarios.base import ContextMapping, Scenario, ScenarioMetadata, ScenarioParam
from tasks_maint.scenarios.procedures.content import (
    ApipieCache,
    ContentMigrationReset,
    ContentMigrationStats,
    ContentPrepare,
    ContentPrepareAbort,
    ContentSwitchover,
    FixPulpcoreArtifactOwnership,
)
from tasks_maint.scenarios.procedures.pulp import CleanupOldMetadataFiles, PulpRemove
from tasks_maint.scenarios.procedures.service import ServicesEnableStart, ServicesStopDisable

MIGRATION_SERVICES_MIN_SATELLITE = "6.9"

ASSUMEYES = ScenarioParam("assumeyes", "Do not ask for confirmation")


class ContentScenario(Scenario):
    """Content scenario that can wrap its core step in the migration services."""

    def satellite(self) -> bool:
        return self.capabilities.has(Capability.SATELLITE)

    def migration_services_required(self) -> bool:
        return self.capabilities.version_at_least(
            Capability.SATELLITE,
            MIGRATION_SERVICES_MIN_SATELLITE,
        )

    def enable_and_start_services(self) -> None:
        self.add_step(ServicesEnableStart, services=self.settings.content.migration_services)

    def disable_and_stop_services(self) -> None:
        self.add_step(ServicesStopDisable, services=self.settings.content.migration_services)


class ContentPrepareScenario(ContentScenario):
    metadata = ScenarioMetadata(
        label="content_prepare",
        description="Prepare content for Pulp 3",
        params=(ScenarioParam("quiet", "Keep the output short"),),
        manual_detection=True,
    )
    context_mappings = (ContextMapping("quiet", ContentPrepare, "quiet"),)

    def compose(self) -> None:
        if self.migration_services_required():
            self.enable_and_start_services()
            self.add_step_with_context(ContentPrepare)
            self.disable_and_stop_services()
        elif not self.satellite():
            self.add_step_with_context(ContentPrepare)


class ContentSwitchoverScenario(ContentScenario):
    metadata = ScenarioMetadata(
        label="content_switchover",
        description="Switch support for certain content from Pulp 2 to Pulp 3",
        manual_detection=True,
    )

    def compose(self) -> None:
        self.add_step_with_context(ContentSwitchover)
        self.add_step(ApipieCache)


class ContentPrepareAbortScenario(ContentScenario):
    metadata = ScenarioMetadata(
        label="content_prepare_abort",
        description="Abort all running Pulp 2 to Pulp 3 migration tasks",
        manual_detection=True,
    )

    def compose(self) -> None:
        if self.satellite() and not self.migration_services_required():
            return
        if self.satellite():
            self.enable_and_start_services()
        self.add_step(ContentPrepareAbort)
        if self.satellite():
            self.disable_and_stop_services()


class ContentMigrationStatsScenario(ContentScenario):
    metadata = ScenarioMetadata(
        label="content_migration_stats",
        description="Retrieve Pulp 2 to Pulp 3 migration statistics",
        manual_detection=True,
    )

    def compose(self) -> None:
        if not self.satellite() or self.migration_services_required():
            self.add_step(ContentMigrationStats)


class ContentMigrationResetScenario(ContentScenario):
    metadata = ScenarioMetadata(
        label="content_migration_reset",
        description="Reset the Pulp 2 to Pulp 3 migration data (pre-switchover)",
        manual_detection=True,
    )

    def compose(self) -> None:
        if self.migration_services_required():
            self.enable_and_start_services()
            self.add_step(ContentMigrationReset)
            self.disable_and_stop_services()
        elif not self.satellite():
            self.add_step(ContentMigrationReset)


class CleanupRepositoryMetadataScenario(ContentScenario):
    metadata = ScenarioMetadata(
        label="cleanup_repository_metadata",
        description="Remove old leftover repository metadata",
        params=(
            ScenarioParam(
                "remove_files",
                "Actually remove the files? Otherwise a dryrun is performed.",
            ),
        ),
        manual_detection=True,
    )
    context_mappings = (ContextMapping("remove_files", CleanupOldMetadataFiles, "remove_files"),)

    def compose(self) -> None:
        self.add_step_with_context(CleanupOldMetadataFiles)


class RemovePulp2Scenario(ContentScenario):
    metadata = ScenarioMetadata(
        label="content_remove_pulp2",
        description="Remove Pulp2 and mongodb packages and data",
        params=(ASSUMEYES,),
        manual_detection=True,
    )
    context_mappings = (
        ContextMapping("assumeyes", PulpRemove, "assumeyes"),
        ContextMapping("assumeyes", FixPulpcoreArtifactOwnership, "assumeyes"),
    )

    def compose(self) -> None:
        self.add_step_with_context(PulpRemove)
        self.add_step_with_context(FixPulpcoreArtifactOwnership)


class FixPulpcoreArtifactOwnershipScenario(ContentScenario):
    metadata = ScenarioMetadata(
        label="content_fix_pulpcore_artifact_ownership",
        description="Fix Pulpcore artifact ownership to be pulp:pulp",
        params=(ASSUMEYES,),
        manual_detection=True,
    )
    context_mappings = (ContextMapping("assumeyes", FixPulpcoreArtifactOwnership, "assumeyes"),)

    def compose(self) -> None:
        self.add_step_with_context(FixPulpcoreArtifactOwnership)
