"""Shell command runner used by procedures and capability probes."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from tasks_maint.errors import CommandError

logger = logging.getLogger(__name__)

HIDDEN_MASK = "[FILTERED]"


@dataclass(slots=True)
class CommandResult:
    """Exit status and merged stdout/stderr of one command."""

    command: str
    exit_status: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class CommandRunner:
    """Run shell commands with optional stdin and secret masking in logs."""

    def __init__(self, *, timeout_seconds: float | None = None) -> None:
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        command: str,
        *,
        stdin: str | None = None,
        hidden_patterns: Iterable[str] = (),
    ) -> CommandResult:
        hidden = tuple(pattern for pattern in hidden_patterns if pattern)
        logger.debug("Running command: %s", mask(command, hidden))
        try:
            completed = subprocess.run(  # noqa: S602
                command,
                shell=True,
                input=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as error:
            raise CommandError(
                mask(command, hidden),
                exit_status=-1,
                output=f"timed out after {error.timeout} seconds",
            ) from error
        output = completed.stdout or ""
        logger.debug(
            "Command exited with %d: %s",
            completed.returncode,
            mask(output.strip(), hidden),
        )
        return CommandResult(command=command, exit_status=completed.returncode, output=output)

    def execute(
        self,
        command: str,
        *,
        stdin: str | None = None,
        hidden_patterns: Iterable[str] = (),
    ) -> str:
        """Return stripped output regardless of exit status."""

        return self.run(command, stdin=stdin, hidden_patterns=hidden_patterns).output.strip()

    def execute_checked(
        self,
        command: str,
        *,
        stdin: str | None = None,
        hidden_patterns: Iterable[str] = (),
        valid_exit_statuses: Sequence[int] = (0,),
    ) -> str:
        """Return stripped output; raise CommandError on a non-whitelisted exit status."""

        hidden = tuple(hidden_patterns)
        result = self.run(command, stdin=stdin, hidden_patterns=hidden)
        if result.exit_status not in valid_exit_statuses:
            raise CommandError(
                mask(command, hidden),
                exit_status=result.exit_status,
                output=mask(result.output, hidden),
            )
        return result.output.strip()

    def execute_ok(
        self,
        command: str,
        *,
        stdin: str | None = None,
        hidden_patterns: Iterable[str] = (),
    ) -> bool:
        return self.run(command, stdin=stdin, hidden_patterns=hidden_patterns).ok


def mask(text: str, hidden_patterns: Iterable[str]) -> str:
    """Replace every hidden pattern occurrence with a fixed mask."""

    for pattern in hidden_patterns:
        if pattern:
            text = text.replace(pattern, HIDDEN_MASK)
    return text
