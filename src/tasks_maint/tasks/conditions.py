"""Map logical task-state names to structured, parameterized task predicates."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from enum import Enum

from sqlalchemy import and_
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col

from tasks_maint.errors import InvalidStateError
from tasks_maint.storage.common import utc_now
from tasks_maint.storage.sqlmodel_models import ForemanTask
from tasks_maint.tasks.models import CONDITION_STATES, ConditionScope, TaskPolicy, TaskState

TASKS_TABLE = "foreman_tasks_tasks"

OLD_TASK_STATES = (TaskState.STOPPED.value, TaskState.PAUSED.value)


@dataclass(frozen=True, slots=True)
class TaskCondition:
    """Conjunction of task filters.

    ``clause()`` feeds the store with bound parameters; ``str()`` gives the
    equivalent readable predicate for logs and operator output.
    """

    name: str
    states: tuple[str, ...]
    started_before: datetime | None = None
    labels: tuple[str, ...] | None = None

    def clause(self) -> ColumnElement[bool]:
        parts: list[ColumnElement[bool]] = [col(ForemanTask.state).in_(self.states)]
        if self.started_before is not None:
            parts.append(col(ForemanTask.started_at) < self.started_before)
        if self.labels is not None:
            parts.append(col(ForemanTask.label).in_(self.labels))
        return and_(*parts)

    def __str__(self) -> str:
        if len(self.states) == 1:
            parts = [f"{TASKS_TABLE}.state = {_quote(self.states[0])}"]
        else:
            parts = [f"{TASKS_TABLE}.state IN ({_quotize(self.states)})"]
        if self.started_before is not None:
            parts.append(
                f"{TASKS_TABLE}.started_at < {_quote(self.started_before.strftime('%Y-%m-%d'))}",
            )
        if self.labels is not None:
            parts.append(f"{TASKS_TABLE}.label IN ({_quotize(self.labels)})")
        return " AND ".join(parts)


def build_condition(
    state: str | TaskState,
    *,
    scope: ConditionScope = ConditionScope.COUNT,
    policy: TaskPolicy | None = None,
    today: date | None = None,
) -> TaskCondition:
    """Build the predicate for one logical state.

    Raises ``InvalidStateError`` for names outside ``old``, ``paused``,
    ``planning`` and ``pending``. The DELETE scope restricts every condition
    to the label allow-list.
    """

    name = state.value if isinstance(state, Enum) else str(state)
    if name not in CONDITION_STATES:
        raise InvalidStateError(name, supported=CONDITION_STATES)

    policy = policy or TaskPolicy()
    labels = tuple(policy.safe_to_delete) if scope is ConditionScope.DELETE else None

    if name == "old":
        return TaskCondition(
            name=name,
            states=OLD_TASK_STATES,
            started_before=_age_cutoff(policy.min_age_days, today),
            labels=labels,
        )
    if name == TaskState.PAUSED.value:
        return TaskCondition(name=name, states=(TaskState.PAUSED.value,), labels=labels)
    return TaskCondition(name=name, states=(name,), labels=labels)


def _age_cutoff(min_age_days: int, today: date | None) -> datetime:
    # Day granularity: everything started before midnight of (today - min age).
    day = (today or utc_now().date()) - timedelta(days=min_age_days)
    return datetime.combine(day, time.min, tzinfo=UTC)


def _quote(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def _quotize(values: tuple[str, ...]) -> str:
    return ", ".join(_quote(value) for value in values)
