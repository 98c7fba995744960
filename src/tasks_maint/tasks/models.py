"""Domain models and safety policy for task records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from tasks_maint.config import TaskSettings


class TaskState(str, Enum):
    """Task lifecycle states stored in the task table."""

    PENDING = "pending"
    PLANNING = "planning"
    PLANNED = "planned"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    SCHEDULED = "scheduled"


class TaskResult(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    CANCELLED = "cancelled"


class ConditionScope(str, Enum):
    """Purpose a condition is built for; deletion adds the label allow-list."""

    COUNT = "count"
    DELETE = "delete"


# Logical state names accepted by the condition builder.
CONDITION_STATES = ("old", "paused", "planning", "pending")

# Labels of tasks that may be removed by cleanup.
SAFE_TO_DELETE = (
    "Actions::Katello::Host::GenerateApplicability",
    "Actions::Katello::RepositorySet::ScanCdn",
    "Actions::Katello::Host::Hypervisors",
    "Actions::Katello::Host::HypervisorsUpdate",
    "Actions::Foreman::Host::ImportFacts",
    "Actions::Candlepin::ListenOnCandlepinEvents",
    "Actions::Katello::EventQueue::Monitor",
)

# Perpetual background jobs that never count as operator-visible running tasks.
EXCLUDE_ACTIONS_FOR_RUNNING_TASKS = (
    "Actions::Candlepin::ListenOnCandlepinEvents",
    "Actions::Katello::EventQueue::Monitor",
    "Actions::Insights::EmailPoller",
    "ForemanInventoryUpload::Async::GenerateAllReportsJob",
    "ForemanInventoryUpload::Async::GenerateReportJob",
    "ForemanInventoryUpload::Async::QueueForUploadJob",
    "ForemanInventoryUpload::Async::UploadReportJob",
    "InsightsCloud::Async::InsightsClientStatusAging",
    "InsightsCloud::Async::InsightsFullSync",
    "InsightsCloud::Async::InsightsResolutionsSync",
    "InsightsCloud::Async::InsightsRulesSync",
    "InsightsCloud::Async::InsightsScheduledSync",
    "InventorySync::Async::InventoryFullSync",
    "InventorySync::Async::InventoryHostsSync",
    "InventorySync::Async::InventoryScheduledSync",
    "InventorySync::Async::InventorySelfHostSync",
)


@dataclass(frozen=True, slots=True)
class TaskPolicy:
    """Static safety rules applied to counting and deletion."""

    safe_to_delete: tuple[str, ...] = SAFE_TO_DELETE
    excluded_running: tuple[str, ...] = EXCLUDE_ACTIONS_FOR_RUNNING_TASKS
    min_age_days: int = 30
    links_min_version: str = "4.0.0"

    @classmethod
    def from_settings(cls, settings: TaskSettings) -> TaskPolicy:
        return cls(
            min_age_days=settings.min_age_days,
            links_min_version=settings.links_min_version,
        )


@dataclass(slots=True)
class TaskView:
    """Readable task row for CLI listings."""

    id: str
    label: str | None
    external_id: str | None
    state: str
    result: str
    started_at: datetime | None


@dataclass(slots=True)
class BackupResult:
    """Files written by one backup run."""

    state: str
    directory: Path
    files: list[Path] = field(default_factory=list)
