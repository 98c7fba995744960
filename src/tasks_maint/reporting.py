"""Operator-facing progress output and confirmations."""

from __future__ import annotations

from typing import Protocol

import rich_click as click
from rich.console import Console


class Reporter(Protocol):
    """Sink for human-readable progress of long-running operations."""

    def info(self, message: str) -> None:
        raise NotImplementedError

    def progress(self, message: str) -> None:
        raise NotImplementedError

    def warning(self, message: str) -> None:
        raise NotImplementedError

    def confirm(self, question: str) -> bool:
        raise NotImplementedError


class ConsoleReporter:
    """Rich console reporter; confirmations default to no when input is closed."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False, soft_wrap=True)

    def info(self, message: str) -> None:
        self.console.print(message, markup=False)

    def progress(self, message: str) -> None:
        self.console.print(message, markup=False, style="dim")

    def warning(self, message: str) -> None:
        self.console.print(f"WARNING: {message}", markup=False, style="yellow")

    def confirm(self, question: str) -> bool:
        try:
            return click.confirm(question, default=False)
        except click.Abort:
            return False
