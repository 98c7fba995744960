from __future__ import annotations

from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from tasks_maint.main import tasks_maint

pytestmark = [
    allure.epic("CLI"),
    allure.feature("Task & Scenario Commands"),
]

UNSAFE_LABEL = "Actions::Katello::Repository::Sync"


@pytest.fixture()
def cli_env(monkeypatch: pytest.MonkeyPatch, backup_root: Path) -> None:
    monkeypatch.setenv("TASKS_MAINT_CAPABILITIES", "foreman-tasks=4.1.0")
    monkeypatch.setenv("TASKS_MAINT_BACKUP_DIR", str(backup_root))


def _invoke(*args: str, input: str | None = None):  # noqa: A002
    return CliRunner().invoke(tasks_maint, list(args), input=input)


def test_tasks_count_prints_count_and_condition(cli_env, db_url, seed_task) -> None:
    seed_task("old-safe")
    seed_task("old-unsafe", label=UNSAFE_LABEL)

    result = _invoke("tasks", "count", "--db-url", db_url, "--state", "old")
    deletable = _invoke("tasks", "count", "--db-url", db_url, "--deletable")

    assert result.exit_code == 0, result.output
    assert "old tasks: 2" in result.output
    assert "Condition: foreman_tasks_tasks.state IN ('stopped', 'paused')" in result.output
    assert "old tasks: 1" in deletable.output
    assert "foreman_tasks_tasks.label IN (" in deletable.output


def test_tasks_count_rejects_unknown_state(cli_env, db_url) -> None:
    result = _invoke("tasks", "count", "--db-url", db_url, "--state", "running")

    assert result.exit_code == 2


def test_tasks_running_and_paused(cli_env, db_url, seed_task) -> None:
    seed_task("sync", state="running", label=UNSAFE_LABEL)
    seed_task("failed", state="paused", result="error", label=UNSAFE_LABEL)

    running = _invoke("tasks", "running", "--db-url", db_url)
    paused = _invoke("tasks", "paused", "--db-url", db_url, "--ignore-label", UNSAFE_LABEL)

    assert "running tasks: 1" in running.output
    assert "paused tasks with errors: 0" in paused.output


def test_tasks_list(cli_env, db_url, seed_task) -> None:
    seed_task("old-safe")

    result = _invoke("tasks", "list", "--db-url", db_url)

    assert result.exit_code == 0, result.output
    assert "old tasks (showing 1):" in result.output
    assert "old-safe state=stopped result=success" in result.output


def test_tasks_delete_backs_up_then_deletes(cli_env, db_url, seed_task, backup_root) -> None:
    seed_task("old-safe")
    seed_task("old-unsafe", label=UNSAFE_LABEL)

    result = _invoke("tasks", "delete", "--db-url", db_url, "-y")
    after = _invoke("tasks", "count", "--db-url", db_url)

    assert result.exit_code == 0, result.output
    assert "Deleted 1 old task(s)." in result.output
    assert "Backup Tasks [DONE]" in result.output
    assert len(list((backup_root / "backup-tasks" / "old").iterdir())) == 1
    assert "old tasks: 1" in after.output


def test_tasks_delete_declined(cli_env, db_url, seed_task) -> None:
    seed_task("old-safe")

    result = _invoke("tasks", "delete", "--db-url", db_url, "--no-backup", input="n\n")

    assert result.exit_code == 1
    assert "declined" in result.output
    assert "old tasks: 1" in _invoke("tasks", "count", "--db-url", db_url).output


def test_tasks_wait_times_out_while_tasks_run(cli_env, db_url, seed_task) -> None:
    seed_task("sync", state="running", label=UNSAFE_LABEL)

    result = _invoke("tasks", "wait", "--db-url", db_url, "--timeout", "0.01", "--interval", "1")

    assert result.exit_code == 1
    assert "Timeout: 1 running task(s) still present" in result.output
    assert "did not drain" in result.output


def test_tasks_wait_succeeds_when_drained(cli_env, db_url, task_db) -> None:
    result = _invoke("tasks", "wait", "--db-url", db_url, "--state", "paused")

    assert result.exit_code == 0, result.output
    assert "No paused tasks left" in result.output


def test_capabilities_command(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TASKS_MAINT_CAPABILITIES", "satellite=6.9.1,hammer,dynflow-sidekiq")

    result = _invoke("capabilities")

    assert result.exit_code == 0, result.output
    assert "satellite: 6.9.1" in result.output
    assert "hammer: unknown version" in result.output
    assert "pulpcore: absent" in result.output
    assert "Task services: -" in result.output


def test_scenario_list_marks_manual_scenarios(cli_env) -> None:
    result = _invoke("scenario", "list")

    assert result.exit_code == 0, result.output
    assert "content_prepare (manual): Prepare content for Pulp 3" in result.output
    assert "    --remove-files: Actually remove the files?" in result.output


def test_scenario_list_detected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TASKS_MAINT_CAPABILITIES", "satellite=6.2.16")

    result = _invoke("scenario", "list", "--detected")

    assert result.exit_code == 0, result.output
    assert "pre_upgrade_check_satellite_6_2_z: checks before upgrading to Satellite 6.2.z" in (
        result.output
    )
    assert "content_prepare" not in result.output


def test_scenario_show_lists_sandwiched_steps(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TASKS_MAINT_CAPABILITIES", "satellite=6.9")
    monkeypatch.setenv("TASKS_MAINT_PULPCORE_MIGRATION_SERVICES", "redis")

    result = _invoke("scenario", "show", "content_prepare", "--quiet")

    assert result.exit_code == 0, result.output
    assert "  1. enable-services (services=('redis',))" in result.output
    assert "  2. content-prepare (quiet=True)" in result.output
    assert "  3. disable-services (services=('redis',))" in result.output


def test_scenario_show_rejects_undeclared_parameter(cli_env) -> None:
    result = _invoke("scenario", "show", "content_switchover", "--remove-files")

    assert result.exit_code == 1
    assert "does not accept parameter(s): remove_files" in result.output


def test_scenario_show_unknown_label(cli_env) -> None:
    result = _invoke("scenario", "show", "no_such_scenario")

    assert result.exit_code == 1
    assert "Unknown scenario" in result.output


def test_scenario_run_tasks_cleanup(cli_env, db_url, seed_task, backup_root) -> None:
    seed_task("old-safe")

    result = _invoke("scenario", "run", "tasks_cleanup", "--db-url", db_url, "--assumeyes")

    assert result.exit_code == 0, result.output
    assert "Scenario tasks_cleanup: completed" in result.output
    assert "backup-tasks [SUCCESS]" in result.output
    assert "delete-tasks [SUCCESS]" in result.output
    assert (backup_root / "backup-tasks" / "old").is_dir()
    assert "old tasks: 0" in _invoke("tasks", "count", "--db-url", db_url).output


def test_scenario_run_tasks_wait_warns_on_timeout(
    cli_env,
    monkeypatch: pytest.MonkeyPatch,
    db_url,
    seed_task,
) -> None:
    monkeypatch.setenv("TASKS_MAINT_WAIT_TIMEOUT_SECONDS", "0.01")
    monkeypatch.setenv("TASKS_MAINT_RETRY_INTERVAL_SECONDS", "1")
    seed_task("sync", state="running", label=UNSAFE_LABEL)

    result = _invoke("scenario", "run", "tasks_wait", "--db-url", db_url, "--state", "running")

    assert result.exit_code == 0, result.output
    assert "Scenario tasks_wait: completed" in result.output
    assert "wait-for-tasks [WARNING]" in result.output
    assert "Timeout: 1 running task(s) still present. Try again." in result.output


def test_scenario_run_aborts_on_failed_check(
    monkeypatch: pytest.MonkeyPatch,
    db_url,
    seed_task,
) -> None:
    monkeypatch.setenv("TASKS_MAINT_CAPABILITIES", "satellite=6.2.16")
    seed_task("sync", state="running", label=UNSAFE_LABEL)

    result = _invoke("scenario", "run", "pre_upgrade_check_satellite_6_2_z", "--db-url", db_url)

    assert result.exit_code == 1
    assert "Scenario pre_upgrade_check_satellite_6_2_z: aborted" in result.output
    assert "check-old-foreman-tasks [SUCCESS]" in result.output
    assert "foreman-tasks-not-running [FAILED]" in result.output
    assert "foreman-tasks-not-paused [SKIPPED]" in result.output
