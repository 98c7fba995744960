from __future__ import annotations

import os
from pathlib import Path

import allure
import pytest

from tasks_maint.capabilities import CapabilitySnapshot
from tasks_maint.config import ContentSettings, Settings, TaskSettings
from tasks_maint.errors import (
    CheckFailedError,
    CommandError,
    ConfirmationDeclinedError,
    ProcedureError,
    UnsupportedStateError,
)
from tasks_maint.scenarios.procedures.checks import (
    OldTasksCheck,
    PendingTasksCheck,
    PlanningTasksCheck,
    TasksNotPausedCheck,
    TasksNotRunningCheck,
    find_checks,
)
from tasks_maint.scenarios.procedures.content import (
    ContentPrepare,
    FixPulpcoreArtifactOwnership,
)
from tasks_maint.scenarios.procedures.pulp import CleanupOldMetadataFiles, PulpRemove
from tasks_maint.scenarios.procedures.service import ServicesEnableStart, ServicesStopDisable
from tasks_maint.scenarios.procedures.tasks import (
    TasksBackup,
    TasksDelete,
    TasksResume,
    TasksWaitForDrain,
)
from tasks_maint.scenarios.runtime import StepRuntime

pytestmark = [
    allure.epic("Scenarios"),
    allure.feature("Procedures"),
]

UNSAFE_LABEL = "Actions::Katello::Repository::Sync"


class FakeRunner:
    def __init__(self, outputs: dict[str, str] | None = None, failing: tuple[str, ...] = ()) -> None:
        self.outputs = outputs or {}
        self.failing = failing
        self.commands: list[str] = []

    def execute_checked(self, command: str, **_: object) -> str:
        self.commands.append(command)
        if any(marker in command for marker in self.failing):
            raise CommandError(command, exit_status=1, output="failed")
        return self.outputs.get(command, "")


def _runtime(
    reporter,
    *,
    runner: FakeRunner | None = None,
    settings: Settings | None = None,
    capabilities: str = "",
    store=None,
) -> StepRuntime:
    return StepRuntime(
        settings=settings or Settings(),
        runner=runner or FakeRunner(),  # type: ignore[arg-type]
        capabilities=CapabilitySnapshot.from_string(capabilities),
        reporter=reporter,
        store_factory=(lambda: store) if store is not None else None,
    )


def test_enable_start_then_stop_disable_order(reporter) -> None:
    runner = FakeRunner()
    runtime = _runtime(reporter, runner=runner)

    ServicesEnableStart(services=("redis", "pulpcore-api")).run(runtime)
    ServicesStopDisable(services=("redis", "pulpcore-api")).run(runtime)

    assert runner.commands == [
        "systemctl enable redis",
        "systemctl enable pulpcore-api",
        "systemctl start redis",
        "systemctl start pulpcore-api",
        "systemctl stop redis",
        "systemctl stop pulpcore-api",
        "systemctl disable redis",
        "systemctl disable pulpcore-api",
    ]


def test_service_names_must_be_a_tuple() -> None:
    with pytest.raises(TypeError):
        ServicesEnableStart.check_arguments({"services": "redis"})


def test_service_failure_surfaces_as_command_error(reporter) -> None:
    runtime = _runtime(reporter, runner=FakeRunner(failing=("start",)))

    with pytest.raises(CommandError):
        ServicesEnableStart(services=("redis",)).run(runtime)


@pytest.mark.parametrize(("quiet", "printed"), [(False, True), (True, False)])
def test_content_prepare_runs_rake_task(reporter, quiet: bool, printed: bool) -> None:
    command = "foreman-rake katello:pulp3_migration"
    runner = FakeRunner(outputs={command: "Migrated 5 repositories"})

    ContentPrepare(quiet=quiet).run(_runtime(reporter, runner=runner))

    assert runner.commands == [command]
    assert ("Migrated 5 repositories" in reporter.texts("info")) is printed


def test_artifact_ownership_needs_confirmation(reporter, tmp_path: Path) -> None:
    runner = FakeRunner()
    settings = Settings(content=ContentSettings(artifact_dir=tmp_path / "artifact"))
    runtime = _runtime(reporter, runner=runner, settings=settings)

    with pytest.raises(ConfirmationDeclinedError):
        FixPulpcoreArtifactOwnership().run(runtime)
    assert runner.commands == []

    FixPulpcoreArtifactOwnership(assumeyes=True).run(runtime)
    assert runner.commands == [f"chown -R pulp:pulp {tmp_path / 'artifact'}"]


def _metadata_tree(root: Path) -> tuple[Path, Path, Path]:
    repository = root / "repo-1"
    older = repository / "1561048893.84"
    newer = repository / "1561900000.12"
    single = root / "repo-2" / "1561048893.84"
    for index, path in enumerate((older, newer, single)):
        path.mkdir(parents=True)
        (path / "repomd.xml").write_text("<repomd/>")
        os.utime(path, (1_000_000 + index * 100, 1_000_000 + index * 100))
    return older, newer, single


def test_metadata_cleanup_defaults_to_dry_run(reporter, tmp_path: Path) -> None:
    older, newer, single = _metadata_tree(tmp_path)
    settings = Settings(content=ContentSettings(metadata_root=tmp_path))
    procedure = CleanupOldMetadataFiles()

    procedure.run(_runtime(reporter, settings=settings))

    assert older.exists() and newer.exists() and single.exists()
    assert reporter.texts("info") == [f"Would remove {older}"]
    assert procedure.warnings and "--remove-files" in procedure.warnings[0]


def test_metadata_cleanup_keeps_newest_directory_per_repository(reporter, tmp_path: Path) -> None:
    older, newer, single = _metadata_tree(tmp_path)
    settings = Settings(content=ContentSettings(metadata_root=tmp_path))

    CleanupOldMetadataFiles(remove_files=True).run(_runtime(reporter, settings=settings))

    assert not older.exists()
    assert newer.exists()
    assert single.exists()


def test_pulp2_removal_declined_changes_nothing(reporter, tmp_path: Path) -> None:
    data_dir = tmp_path / "mongodb"
    data_dir.mkdir()
    runner = FakeRunner()
    settings = Settings(
        content=ContentSettings(pulp2_packages=("pulp-server",), pulp2_data_dirs=(data_dir,)),
    )

    with pytest.raises(ConfirmationDeclinedError):
        PulpRemove().run(_runtime(reporter, runner=runner, settings=settings))

    assert runner.commands == []
    assert data_dir.exists()
    assert reporter.questions


def test_pulp2_removal_reports_unremovable_data_as_step_error(reporter, tmp_path: Path) -> None:
    data_file = tmp_path / "mongodb"
    data_file.write_text("")
    settings = Settings(content=ContentSettings(pulp2_packages=(), pulp2_data_dirs=(data_file,)))

    with pytest.raises(ProcedureError, match="Cannot remove"):
        PulpRemove(assumeyes=True).run(_runtime(reporter, settings=settings))

    assert data_file.exists()


def test_pulp2_removal_removes_packages_and_data(reporter, tmp_path: Path) -> None:
    data_dir = tmp_path / "mongodb"
    (data_dir / "journal").mkdir(parents=True)
    runner = FakeRunner()
    settings = Settings(
        content=ContentSettings(
            pulp2_packages=("pulp-server", "rh-mongodb34"),
            pulp2_data_dirs=(data_dir, tmp_path / "absent"),
        ),
    )
    reporter.answers = [True]

    PulpRemove().run(_runtime(reporter, runner=runner, settings=settings))

    assert runner.commands == ["yum remove -y pulp-server rh-mongodb34"]
    assert not data_dir.exists()


@pytest.mark.parametrize(
    ("capabilities", "command"),
    [
        ("satellite=6.8.2,hammer", 'hammer task resume --search "" --fields="Total tasks resumed"'),
        ("satellite=6.9.0,hammer", 'hammer task resume --fields="Total tasks resumed"'),
        ("hammer", 'hammer task resume --fields="Total tasks resumed"'),
    ],
)
def test_resume_uses_hammer(reporter, capabilities: str, command: str) -> None:
    runner = FakeRunner(outputs={command: "Total tasks resumed: 2"})

    TasksResume().run(_runtime(reporter, runner=runner, capabilities=capabilities))

    assert runner.commands == [command]
    assert reporter.texts("info") == ["Total tasks resumed: 2"]


def test_tasks_backup_reports_directory(reporter, store, seed_task) -> None:
    seed_task("old-safe")

    TasksBackup().run(_runtime(reporter, store=store))

    assert reporter.texts("info")[-1].startswith("Backup of old tasks saved to ")
    assert "Backup Tasks [DONE]" in reporter.texts("progress")


def test_tasks_delete_declined_keeps_tasks(reporter, store, seed_task) -> None:
    seed_task("old-safe")

    with pytest.raises(ConfirmationDeclinedError):
        TasksDelete().run(_runtime(reporter, store=store))

    assert store.count("old") == 1
    assert reporter.questions == ["Delete 1 old task(s)?"]


def test_tasks_delete_with_assumeyes(reporter, store, seed_task) -> None:
    seed_task("old-safe")
    seed_task("old-unsafe", label=UNSAFE_LABEL)

    TasksDelete(assumeyes=True).run(_runtime(reporter, store=store))

    assert store.count("old") == 1
    assert reporter.texts("info") == ["Deleted 1 old task(s)."]
    assert reporter.questions == []


def test_tasks_delete_with_nothing_to_delete(reporter, store) -> None:
    TasksDelete(state="pending").run(_runtime(reporter, store=store))

    assert reporter.texts("info") == ["No pending tasks to delete."]


def test_wait_step_rejects_states_without_counter() -> None:
    with pytest.raises(UnsupportedStateError):
        TasksWaitForDrain.check_arguments({"state": "old"})
    TasksWaitForDrain.check_arguments({"state": "paused"})


def test_wait_step_warns_on_timeout(reporter, store, seed_task) -> None:
    seed_task("sync", state="running", label=UNSAFE_LABEL)
    settings = Settings(
        tasks=TaskSettings(wait_timeout_seconds=0.01, retry_interval_seconds=1.0),
    )
    procedure = TasksWaitForDrain()

    procedure.run(_runtime(reporter, store=store, settings=settings))

    assert procedure.warnings == ["Timeout: 1 running task(s) still present. Try again."]


def test_wait_step_finishes_when_nothing_runs(reporter, store) -> None:
    procedure = TasksWaitForDrain(state="paused")

    procedure.run(_runtime(reporter, store=store))

    assert procedure.warnings == []
    assert reporter.texts("info") == ["No paused tasks left."]


def test_checks_are_grouped_by_tag() -> None:
    assert find_checks("basic") == (OldTasksCheck, PendingTasksCheck, PlanningTasksCheck)
    assert find_checks("pre_upgrade") == (TasksNotRunningCheck, TasksNotPausedCheck)


def test_running_tasks_fail_pre_upgrade_check(reporter, store, seed_task) -> None:
    seed_task("sync", state="running", label=UNSAFE_LABEL)
    runtime = _runtime(reporter, store=store)

    with pytest.raises(CheckFailedError, match="1 active task"):
        TasksNotRunningCheck().run(runtime)
    TasksNotPausedCheck().run(runtime)


def test_old_tasks_only_warn(reporter, store, seed_task) -> None:
    seed_task("old-unsafe", label=UNSAFE_LABEL)
    check = OldTasksCheck()

    check.run(_runtime(reporter, store=store))

    assert check.warnings == ["There are 1 old task(s) in the system."]
