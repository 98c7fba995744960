"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from sqlalchemy import insert

from tasks_maint.capabilities import CapabilitySnapshot
from tasks_maint.storage.database import TaskDatabase
from tasks_maint.storage.sqlmodel_models import (
    DynflowAction,
    DynflowExecutionPlan,
    DynflowStep,
    ForemanTask,
    TaskLink,
    TaskLock,
)
from tasks_maint.tasks.models import SAFE_TO_DELETE
from tasks_maint.tasks.store import TaskStore

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
OLD = datetime(2026, 1, 5, 8, 30, tzinfo=UTC)
RECENT = datetime(2026, 10, 10, 8, 30, tzinfo=UTC)
SAFE_LABEL = SAFE_TO_DELETE[0]
UNSAFE_LABEL = "Actions::Katello::Repository::Sync"

SeedTask = Callable[..., str]


class RecordingReporter:
    """Reporter double keeping every message and answering confirmations from a script."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []
        self.answers: list[bool] = []
        self.questions: list[str] = []

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def progress(self, message: str) -> None:
        self.messages.append(("progress", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        return self.answers.pop(0) if self.answers else False

    def texts(self, kind: str) -> list[str]:
        return [message for message_kind, message in self.messages if message_kind == kind]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("TASKS_MAINT_"):
            monkeypatch.delenv(name)


@pytest.fixture()
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'tasks.db'}"


@pytest.fixture()
def task_db(db_url: str) -> Iterator[TaskDatabase]:
    database = TaskDatabase(db_url)
    database.create_schema()
    yield database
    database.close()


@pytest.fixture()
def seed_task(task_db: TaskDatabase) -> SeedTask:
    """Insert one task with its execution plan, step, action, lock and link."""

    def _seed(  # noqa: PLR0913
        task_id: str,
        *,
        state: str = "stopped",
        result: str = "success",
        label: str | None = SAFE_LABEL,
        started_at: datetime | None = OLD,
        with_plan: bool = True,
    ) -> str:
        plan_uuid = f"plan-{task_id}"
        with task_db.transaction() as connection:
            if with_plan:
                connection.execute(
                    insert(DynflowExecutionPlan).values(uuid=plan_uuid, state=state, result=result),
                )
                connection.execute(
                    insert(DynflowStep).values(execution_plan_uuid=plan_uuid, id=1, state="success"),
                )
                connection.execute(
                    insert(DynflowAction).values(
                        execution_plan_uuid=plan_uuid,
                        id=1,
                        class_name=label,
                        input="{}",
                    ),
                )
            connection.execute(
                insert(ForemanTask).values(
                    id=task_id,
                    type="ForemanTasks::Task::DynflowTask",
                    label=label,
                    external_id=plan_uuid,
                    state=state,
                    result=result,
                    started_at=started_at,
                ),
            )
            connection.execute(insert(TaskLock).values(task_id=task_id, name="task_owner"))
            connection.execute(insert(TaskLink).values(task_id=task_id, resource_type="Host"))
        return plan_uuid

    return _seed


@pytest.fixture()
def backup_root(tmp_path: Path) -> Path:
    return tmp_path / "backup"


@pytest.fixture()
def store(task_db: TaskDatabase, backup_root: Path) -> TaskStore:
    return TaskStore(
        task_db,
        capabilities=CapabilitySnapshot.from_string("foreman-tasks=4.1.0"),
        backup_root=backup_root,
        clock=lambda: NOW,
    )


@pytest.fixture()
def reporter() -> RecordingReporter:
    return RecordingReporter()
