"""SQLModel tables mirroring the task executor schema."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Text
from sqlmodel import Field, SQLModel


class ForemanTask(SQLModel, table=True):
    __tablename__ = "foreman_tasks_tasks"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_foreman_tasks_state_result", "state", "result"),)

    id: str = Field(primary_key=True)
    type: str = Field(default="ForemanTasks::Task::DynflowTask")
    label: str | None = Field(default=None, index=True)
    external_id: str | None = Field(default=None, index=True)
    state: str = Field(index=True)
    result: str = Field(default="pending", index=True)
    started_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    ended_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))


class DynflowExecutionPlan(SQLModel, table=True):
    __tablename__ = "dynflow_execution_plans"  # type: ignore[bad-override]

    uuid: str = Field(primary_key=True)
    state: str = Field(default="pending")
    result: str = Field(default="pending")
    started_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    ended_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))


class DynflowStep(SQLModel, table=True):
    __tablename__ = "dynflow_steps"  # type: ignore[bad-override]

    execution_plan_uuid: str = Field(
        primary_key=True,
        foreign_key="dynflow_execution_plans.uuid",
    )
    id: int = Field(primary_key=True)
    action_id: int | None = None
    state: str = Field(default="pending")
    error: str | None = Field(default=None, sa_column=Column(Text))


class DynflowAction(SQLModel, table=True):
    __tablename__ = "dynflow_actions"  # type: ignore[bad-override]

    execution_plan_uuid: str = Field(
        primary_key=True,
        foreign_key="dynflow_execution_plans.uuid",
    )
    id: int = Field(primary_key=True)
    class_name: str | None = None
    input: str | None = Field(default=None, sa_column=Column(Text))


class TaskLock(SQLModel, table=True):
    __tablename__ = "foreman_tasks_locks"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    task_id: str = Field(index=True)
    name: str | None = None
    resource_type: str | None = None
    resource_id: int | None = None


class TaskLink(SQLModel, table=True):
    __tablename__ = "foreman_tasks_links"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    task_id: str = Field(index=True)
    resource_type: str | None = None
    resource_id: int | None = None
