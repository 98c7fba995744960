"""Service lifecycle procedures wrapping transient services around a core step."""

from __future__ import annotations

import shlex
from collections.abc import Mapping
from typing import Any, ClassVar

from tasks_maint.scenarios.base import Procedure
from tasks_maint.scenarios.runtime import StepRuntime


class _ServicesProcedure(Procedure):
    actions: ClassVar[tuple[str, ...]] = ()

    def __init__(self, *, services: tuple[str, ...] = ()) -> None:
        super().__init__()
        self.services = services

    @classmethod
    def check_arguments(cls, arguments: Mapping[str, Any]) -> None:
        if not isinstance(arguments.get("services", ()), tuple):
            raise TypeError(f"{cls.__name__} expects services as a tuple")

    def run(self, runtime: StepRuntime) -> None:
        for action in self.actions:
            for service in self.services:
                runtime.reporter.progress(f"systemctl {action} {service}")
                runtime.runner.execute_checked(f"systemctl {action} {shlex.quote(service)}")


class ServicesEnableStart(_ServicesProcedure):
    label = "enable-services"
    description = "Enable and start services"
    actions = ("enable", "start")


class ServicesStopDisable(_ServicesProcedure):
    label = "disable-services"
    description = "Stop and disable services"
    actions = ("stop", "disable")
