"""Pulp maintenance procedures: stale metadata cleanup and Pulp 2 removal."""

from __future__ import annotations

import logging
import shlex
import shutil
from pathlib import Path

from tasks_maint.errors import ConfirmationDeclinedError, ProcedureError
from tasks_maint.scenarios.base import Procedure
from tasks_maint.scenarios.runtime import StepRuntime

logger = logging.getLogger(__name__)


class CleanupOldMetadataFiles(Procedure):
    """Keep only the newest published metadata directory of each repository.

    Without ``remove_files`` the procedure only reports what would go.
    """

    label = "cleanup-old-metadata-files"
    description = "Remove old leftover repository metadata"

    def __init__(self, *, remove_files: bool = False) -> None:
        super().__init__()
        self.remove_files = remove_files

    def run(self, runtime: StepRuntime) -> None:
        root = runtime.settings.content.metadata_root
        if not root.is_dir():
            runtime.reporter.info(f"No metadata directory found at {root}, nothing to clean up.")
            return

        try:
            stale = stale_metadata_dirs(root)
        except OSError as error:
            raise ProcedureError(f"Cannot scan metadata under {root}: {error}") from error
        if not stale:
            runtime.reporter.info("No old repository metadata found.")
            return

        if not self.remove_files:
            for path in stale:
                runtime.reporter.info(f"Would remove {path}")
            self.warn(
                f"Dry run: {len(stale)} old metadata director(ies) found. "
                "Rerun with --remove-files to delete them.",
            )
            return

        for path in stale:
            runtime.reporter.progress(f"Removing {path}")
            _remove_tree(path)
        logger.info("Removed %d old metadata directories under %s", len(stale), root)
        runtime.reporter.info(f"Removed {len(stale)} old metadata director(ies).")


def stale_metadata_dirs(root: Path) -> list[Path]:
    """All but the most recently modified timestamp directory per repository."""

    stale: list[Path] = []
    for repository in sorted(path for path in root.iterdir() if path.is_dir()):
        versions = sorted(
            (path for path in repository.iterdir() if path.is_dir()),
            key=lambda path: (path.stat().st_mtime, path.name),
        )
        stale.extend(versions[:-1])
    return stale


def _remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except OSError as error:
        raise ProcedureError(f"Cannot remove {path}: {error}") from error


class PulpRemove(Procedure):
    label = "pulp-remove"
    description = "Remove Pulp2 and mongodb packages and data"

    def __init__(self, *, assumeyes: bool = False) -> None:
        super().__init__()
        self.assumeyes = assumeyes

    def run(self, runtime: StepRuntime) -> None:
        content = runtime.settings.content
        if not self.assumeyes and not runtime.reporter.confirm(
            "Do you want to remove the Pulp 2 packages and their data? This cannot be undone.",
        ):
            raise ConfirmationDeclinedError("Pulp 2 removal declined.")

        if content.pulp2_packages:
            packages = " ".join(shlex.quote(package) for package in content.pulp2_packages)
            runtime.reporter.progress("Removing Pulp 2 packages")
            runtime.runner.execute_checked(f"yum remove -y {packages}")

        for directory in content.pulp2_data_dirs:
            if not directory.exists():
                continue
            runtime.reporter.progress(f"Removing {directory}")
            _remove_tree(directory)
        runtime.reporter.info("Pulp 2 packages and data removed.")
