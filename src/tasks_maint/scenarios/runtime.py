"""Collaborators handed to procedures while a scenario executes."""

from __future__ import annotations

from collections.abc import Callable

from tasks_maint.capabilities import CapabilitySnapshot
from tasks_maint.config import Settings
from tasks_maint.errors import TasksMaintError
from tasks_maint.reporting import Reporter
from tasks_maint.runner import CommandRunner
from tasks_maint.tasks.store import TaskStore


class StepRuntime:
    """Shared runner, reporter and lazily opened task store."""

    def __init__(
        self,
        *,
        settings: Settings,
        runner: CommandRunner,
        capabilities: CapabilitySnapshot,
        reporter: Reporter,
        store_factory: Callable[[], TaskStore] | None = None,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.capabilities = capabilities
        self.reporter = reporter
        self._store_factory = store_factory
        self._store: TaskStore | None = None

    @property
    def tasks(self) -> TaskStore:
        if self._store is None:
            if self._store_factory is None:
                raise TasksMaintError("No task database configured for this run.")
            self._store = self._store_factory()
        return self._store
