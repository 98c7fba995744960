"""Error taxonomy shared by task store, runner and scenario layers."""

from __future__ import annotations

SERVICE_UNAVAILABLE_MESSAGE = "Please check whether database service is up & running state."


class TasksMaintError(Exception):
    """Base error for operator-facing maintenance failures."""


class InvalidStateError(TasksMaintError, ValueError):
    """Task state name has no condition semantics."""

    def __init__(
        self,
        state: str,
        *,
        supported: tuple[str, ...],
        message: str | None = None,
    ) -> None:
        super().__init__(
            message or f"Invalid state: {state!r}. Expected one of: {', '.join(supported)}",
        )
        self.state = state
        self.supported = supported


class UnsupportedStateError(InvalidStateError):
    """State has no counting method bound for drain polling."""

    def __init__(self, state: str, *, supported: tuple[str, ...]) -> None:
        super().__init__(
            state,
            supported=supported,
            message=(
                f"Unsupported for state {state!r}. No count method defined "
                f"(supported: {', '.join(supported)})"
            ),
        )


class ServiceUnavailableError(TasksMaintError):
    """Backing database is unreachable."""

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(SERVICE_UNAVAILABLE_MESSAGE)
        self.detail = detail


class QueryError(TasksMaintError):
    """Statement was rejected by a reachable database."""


class CommandError(TasksMaintError):
    """External command exited with a non-whitelisted status."""

    def __init__(self, command: str, *, exit_status: int, output: str) -> None:
        super().__init__(
            f"Command {command!r} failed with exit status {exit_status}: {output.strip() or '-'}",
        )
        self.command = command
        self.exit_status = exit_status
        self.output = output


class BackupError(TasksMaintError):
    """Task backup could not be written."""


class ScenarioNotFoundError(TasksMaintError):
    """No scenario is registered under the requested label."""

    def __init__(self, label: str) -> None:
        super().__init__(f"Unknown scenario: {label!r}")
        self.label = label


class UnknownParameterError(TasksMaintError):
    """Parameter is not declared by the scenario."""

    def __init__(self, label: str, names: tuple[str, ...]) -> None:
        super().__init__(
            f"Scenario {label!r} does not accept parameter(s): {', '.join(names)}",
        )
        self.label = label
        self.names = names


class CheckFailedError(TasksMaintError):
    """Health check found a condition that blocks the operation."""


class ConfirmationDeclinedError(TasksMaintError):
    """Operator declined a destructive step."""


class IncompleteDeleteError(TasksMaintError):
    """Matching tasks remain after a committed delete."""

    def __init__(self, state: str, remaining: int) -> None:
        super().__init__(f"{remaining} {state} task(s) remain after delete.")
        self.state = state
        self.remaining = remaining


class ProcedureError(TasksMaintError):
    """Step could not change files it manages."""
