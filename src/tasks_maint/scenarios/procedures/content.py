"""Content migration procedures driven by rake tasks."""

from __future__ import annotations

import shlex
from typing import ClassVar

from tasks_maint.errors import ConfirmationDeclinedError
from tasks_maint.scenarios.base import Procedure
from tasks_maint.scenarios.runtime import StepRuntime


class _RakeProcedure(Procedure):
    rake_task: ClassVar[str] = ""

    def __init__(self, *, quiet: bool = False) -> None:
        super().__init__()
        self.quiet = quiet

    def run(self, runtime: StepRuntime) -> None:
        output = runtime.runner.execute_checked(f"foreman-rake {self.rake_task}")
        if output and not self.quiet:
            runtime.reporter.info(output)


class ContentPrepare(_RakeProcedure):
    label = "content-prepare"
    description = "Prepare content for Pulp 3"
    rake_task = "katello:pulp3_migration"


class ContentSwitchover(_RakeProcedure):
    label = "content-switchover"
    description = "Switch support for certain content from Pulp 2 to Pulp 3"
    rake_task = "katello:pulp3_content_switchover"


class ContentPrepareAbort(_RakeProcedure):
    label = "content-prepare-abort"
    description = "Abort all running Pulp 2 to Pulp 3 migration tasks"
    rake_task = "katello:pulp3_migration_abort"


class ContentMigrationStats(_RakeProcedure):
    label = "content-migration-stats"
    description = "Retrieve Pulp 2 to Pulp 3 migration statistics"
    rake_task = "katello:pulp3_migration_stats"


class ContentMigrationReset(_RakeProcedure):
    label = "content-migration-reset"
    description = "Reset the Pulp 2 to Pulp 3 migration data (pre-switchover)"
    rake_task = "katello:pulp3_migration_reset"


class ApipieCache(_RakeProcedure):
    label = "apipie-cache"
    description = "Regenerate Apipie cache"
    rake_task = "apipie:cache:index"


class FixPulpcoreArtifactOwnership(Procedure):
    label = "content-fix-pulpcore-artifact-ownership"
    description = "Fix Pulpcore artifact ownership to be pulp:pulp"

    def __init__(self, *, assumeyes: bool = False) -> None:
        super().__init__()
        self.assumeyes = assumeyes

    def run(self, runtime: StepRuntime) -> None:
        artifact_dir = runtime.settings.content.artifact_dir
        if not self.assumeyes and not runtime.reporter.confirm(
            f"Change ownership of {artifact_dir} to pulp:pulp?",
        ):
            raise ConfirmationDeclinedError("Artifact ownership change declined.")
        runtime.runner.execute_checked(f"chown -R pulp:pulp {shlex.quote(str(artifact_dir))}")
        runtime.reporter.info(f"Ownership of {artifact_dir} set to pulp:pulp")
