"""Counting, backup and transactional deletion of task records."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy import delete as sa_delete
from sqlalchemy.sql import Executable, Select
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import SQLModel, col

from tasks_maint.capabilities import Capability, CapabilitySnapshot
from tasks_maint.storage.common import utc_now
from tasks_maint.storage.database import TaskDatabase
from tasks_maint.storage.sqlmodel_models import (
    DynflowAction,
    DynflowExecutionPlan,
    DynflowStep,
    ForemanTask,
    TaskLink,
    TaskLock,
)
from tasks_maint.tasks.backup import BackupBundle
from tasks_maint.tasks.conditions import TaskCondition, build_condition
from tasks_maint.tasks.models import (
    BackupResult,
    ConditionScope,
    TaskPolicy,
    TaskResult,
    TaskState,
    TaskView,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

# Dependent tables in export order, with the column holding the plan uuid.
BACKUP_TABLES: tuple[tuple[type[SQLModel], str], ...] = (
    (DynflowExecutionPlan, "uuid"),
    (DynflowStep, "execution_plan_uuid"),
    (DynflowAction, "execution_plan_uuid"),
)


class TaskStore:
    """Task table facade enforcing label and age safety rules."""

    def __init__(
        self,
        database: TaskDatabase,
        *,
        capabilities: CapabilitySnapshot,
        backup_root: Path,
        policy: TaskPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.database = database
        self.capabilities = capabilities
        self.backup_root = backup_root
        self.policy = policy or TaskPolicy()
        self.clock = clock

    def condition(
        self,
        state: str,
        *,
        scope: ConditionScope = ConditionScope.COUNT,
    ) -> TaskCondition:
        return build_condition(state, scope=scope, policy=self.policy, today=self.clock().date())

    def count(self, state: str, *, scope: ConditionScope = ConditionScope.COUNT) -> int:
        return self._count(self.condition(state, scope=scope))

    def running_count(self) -> int:
        """Running tasks, ignoring perpetual background jobs."""

        statement = (
            select(func.count())
            .select_from(ForemanTask)
            .where(
                col(ForemanTask.state) == TaskState.RUNNING.value,
                _label_not_in(self.policy.excluded_running),
            )
        )
        return int(self.database.scalar(statement))

    def paused_error_count(self, ignore_labels: Sequence[str] = ()) -> int:
        """Paused tasks that ended in error, optionally ignoring some labels."""

        filters = [
            col(ForemanTask.state) == TaskState.PAUSED.value,
            col(ForemanTask.result) == TaskResult.ERROR.value,
        ]
        if ignore_labels:
            filters.append(_label_not_in(tuple(ignore_labels)))
        statement = select(func.count()).select_from(ForemanTask).where(*filters)
        return int(self.database.scalar(statement))

    def list_tasks(
        self,
        state: str,
        *,
        scope: ConditionScope = ConditionScope.COUNT,
        limit: int = 50,
    ) -> list[TaskView]:
        condition = self.condition(state, scope=scope)
        statement = (
            select(ForemanTask.__table__)  # type: ignore[attr-defined]
            .where(condition.clause())
            .order_by(col(ForemanTask.started_at).asc(), col(ForemanTask.id).asc())
            .limit(limit)
        )
        return [
            TaskView(
                id=row["id"],
                label=row["label"],
                external_id=row["external_id"],
                state=row["state"],
                result=row["result"],
                started_at=row["started_at"],
            )
            for row in self.database.query(statement)
        ]

    def delete(self, state: str) -> int:
        """Delete deletable tasks and their dependents atomically.

        Returns the remaining count for the same condition; anything above
        zero means the delete did not take full effect.
        """

        condition = self.condition(state, scope=ConditionScope.DELETE)
        statements = self._delete_statements(condition)
        logger.info("Deleting tasks where %s", condition)
        with self.database.transaction() as connection:
            for statement in statements:
                connection.execute(statement)

        remaining = self._count(condition)
        if remaining:
            logger.warning("%d %s task(s) remain after delete", remaining, condition.name)
        return remaining

    def backup(self, state: str, on_progress: ProgressCallback | None = None) -> BackupResult:
        """Export matching rows of the dependent tables and the task table.

        Fails fast: the first failing export aborts the rest and leaves the
        files already written in place.
        """

        report = on_progress or _ignore_progress
        condition = self.condition(state, scope=ConditionScope.DELETE)
        bundle = BackupBundle(
            self.backup_root,
            condition.name,
            captured_at=self.clock().astimezone(),
        )
        result = BackupResult(state=condition.name, directory=bundle.directory)

        for model, key in BACKUP_TABLES:
            table_name = model.__tablename__
            report(f"Backup {table_name} [running]")
            csv_text = self.database.query_csv(_linked_rows(model, key, condition))
            result.files.append(bundle.write_compressed_csv(f"{table_name}.csv", csv_text))
            report(f"Backup {table_name} [DONE]")

        report("Backup Tasks [running]")
        csv_text = self.database.query_csv(
            select(ForemanTask.__table__).where(condition.clause()),  # type: ignore[attr-defined]
        )
        result.files.append(
            bundle.write_compressed_csv(f"{ForemanTask.__tablename__}.csv", csv_text),
        )
        report("Backup Tasks [DONE]")
        return result

    def links_supported(self) -> bool:
        return self.capabilities.version_at_least(
            Capability.FOREMAN_TASKS,
            self.policy.links_min_version,
        )

    def _count(self, condition: TaskCondition) -> int:
        statement = select(func.count()).select_from(ForemanTask).where(condition.clause())
        return int(self.database.scalar(statement))

    def _delete_statements(self, condition: TaskCondition) -> list[Executable]:
        plan_uuids = select(col(ForemanTask.external_id)).where(condition.clause())
        existing_task_ids = select(col(ForemanTask.id))
        statements: list[Executable] = [
            sa_delete(DynflowStep).where(
                cast(col(DynflowStep.execution_plan_uuid), String).in_(plan_uuids),
            ),
            sa_delete(DynflowAction).where(
                cast(col(DynflowAction.execution_plan_uuid), String).in_(plan_uuids),
            ),
            sa_delete(DynflowExecutionPlan).where(
                cast(col(DynflowExecutionPlan.uuid), String).in_(plan_uuids),
            ),
            sa_delete(ForemanTask).where(condition.clause()),
            # Locks and links may now be orphaned.
            sa_delete(TaskLock).where(col(TaskLock.task_id).not_in(existing_task_ids)),
        ]
        if self.links_supported():
            statements.append(
                sa_delete(TaskLink).where(col(TaskLink.task_id).not_in(existing_task_ids)),
            )
        return statements


def _linked_rows(model: type[SQLModel], key: str, condition: TaskCondition) -> Select:
    table = model.__table__  # type: ignore[attr-defined]
    tasks = ForemanTask.__table__  # type: ignore[attr-defined]
    return (
        select(table)
        .select_from(tasks.join(table, tasks.c.external_id == cast(table.c[key], String)))
        .where(condition.clause())
    )


def _label_not_in(labels: tuple[str, ...]) -> ColumnElement[bool]:
    return or_(col(ForemanTask.label).is_(None), col(ForemanTask.label).not_in(labels))


def _ignore_progress(_: str) -> None:
    return None
