"""Typed capability detection with per-run memoization."""

from __future__ import annotations

import logging
import re
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from packaging.version import InvalidVersion, Version

from tasks_maint.config import CapabilitySettings
from tasks_maint.runner import CommandRunner

logger = logging.getLogger(__name__)

_NUMERIC_PREFIX = re.compile(r"\d+(?:\.\d+)*")


class Capability(str, Enum):
    """Installed components that gate scenarios and statements."""

    FOREMAN = "foreman"
    FOREMAN_TASKS = "foreman-tasks"
    SATELLITE = "satellite"
    DYNFLOW_SIDEKIQ = "dynflow-sidekiq"
    PULPCORE = "pulpcore"
    HAMMER = "hammer"


@dataclass(frozen=True, slots=True)
class CapabilitySnapshot:
    """Immutable view of detected capabilities.

    A capability maps to its version string, to an empty string when present
    with an unknown version, or is missing entirely when not installed.
    """

    versions: Mapping[Capability, str] = field(default_factory=dict)

    def has(self, capability: Capability) -> bool:
        return capability in self.versions

    def version(self, capability: Capability) -> str | None:
        return self.versions.get(capability)

    def version_at_least(self, capability: Capability, minimum: str) -> bool:
        """True when the capability is installed with a version >= minimum."""

        current = _parse_version(self.versions.get(capability))
        if current is None:
            return False
        return current >= Version(minimum)

    def minor_version(self, capability: Capability) -> str | None:
        """Major.minor of the installed version, e.g. ``6.8``."""

        current = _parse_version(self.versions.get(capability))
        if current is None:
            return None
        return f"{current.major}.{current.minor}"

    @classmethod
    def from_string(cls, raw: str) -> CapabilitySnapshot:
        """Parse ``satellite=6.9,foreman-tasks=4.1.0,hammer`` style declarations."""

        versions: dict[Capability, str] = {}
        for part in raw.split(","):
            token = part.strip()
            if not token:
                continue
            name, _, version = token.partition("=")
            try:
                capability = Capability(name.strip())
            except ValueError as error:
                raise ValueError(f"Unknown capability: {name.strip()!r}") from error
            versions[capability] = version.strip()
        return cls(versions=versions)

    def describe(self) -> list[str]:
        lines = []
        for capability in Capability:
            if capability in self.versions:
                version = self.versions[capability] or "unknown version"
                lines.append(f"  {capability.value}: {version}")
            else:
                lines.append(f"  {capability.value}: absent")
        return lines


class CapabilityProbe(Protocol):
    """Resolve one capability to its installed version."""

    def probe(self, capability: Capability) -> str | None:
        """Return installed version, empty string when unknown, None when absent."""
        raise NotImplementedError


class StaticProbe:
    """Probe answering from a declared snapshot."""

    def __init__(self, snapshot: CapabilitySnapshot) -> None:
        self.snapshot = snapshot

    def probe(self, capability: Capability) -> str | None:
        return self.snapshot.version(capability)


class PackageVersionProbe:
    """Probe installed package versions through a query command."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        query_command: str,
        packages: Mapping[str, str],
    ) -> None:
        self.runner = runner
        self.query_command = query_command
        self.packages = packages

    def probe(self, capability: Capability) -> str | None:
        package = self.packages.get(capability.value)
        if not package:
            return None
        result = self.runner.run(self.query_command.format(package=shlex.quote(package)))
        if not result.ok:
            return None
        version = result.output.strip()
        if "not installed" in version:
            return None
        return version


class CapabilityRegistry:
    """Memoized capability lookups; presence and versions do not change mid-run."""

    def __init__(self, probe: CapabilityProbe) -> None:
        self._probe = probe
        self._cache: dict[Capability, str | None] = {}

    def lookup(self, capability: Capability) -> str | None:
        if capability not in self._cache:
            version = self._probe.probe(capability)
            logger.debug("Capability %s resolved to %r", capability.value, version)
            self._cache[capability] = version
        return self._cache[capability]

    def has(self, capability: Capability) -> bool:
        return self.lookup(capability) is not None

    def version_at_least(self, capability: Capability, minimum: str) -> bool:
        current = _parse_version(self.lookup(capability))
        if current is None:
            return False
        return current >= Version(minimum)

    def snapshot(self) -> CapabilitySnapshot:
        versions: dict[Capability, str] = {}
        for capability in Capability:
            version = self.lookup(capability)
            if version is not None:
                versions[capability] = version
        return CapabilitySnapshot(versions=versions)


def build_registry(settings: CapabilitySettings, runner: CommandRunner) -> CapabilityRegistry:
    """Static declaration wins over package probing when configured."""

    if settings.static is not None:
        return CapabilityRegistry(StaticProbe(CapabilitySnapshot.from_string(settings.static)))
    return CapabilityRegistry(
        PackageVersionProbe(
            runner,
            query_command=settings.package_query_command,
            packages=settings.packages,
        ),
    )


def tasks_service_names(snapshot: CapabilitySnapshot) -> list[str]:
    """Services running the task executor; sidekiq-based installs manage their own."""

    if snapshot.has(Capability.DYNFLOW_SIDEKIQ):
        return []
    if snapshot.version_at_least(Capability.FOREMAN, "1.17"):
        return ["dynflowd"]
    return ["foreman-tasks"]


def _parse_version(value: str | None) -> Version | None:
    if not value:
        return None
    match = _NUMERIC_PREFIX.match(value.strip())
    if match is None:
        return None
    try:
        return Version(match.group(0))
    except InvalidVersion:
        logger.debug("Unparsable capability version: %r", value)
        return None
