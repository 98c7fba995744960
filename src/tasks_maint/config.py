"""Runtime configuration for task maintenance and scenarios."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_DB_URL = "postgresql+psycopg://foreman@localhost:5432/foreman"
DEFAULT_BACKUP_DIR = Path("/var/lib/foreman-maintain")
DEFAULT_PACKAGE_QUERY_COMMAND = "rpm -q --queryformat %{{VERSION}} {package}"

DEFAULT_CAPABILITY_PACKAGES = {
    "foreman": "foreman",
    "foreman-tasks": "tfm-rubygem-foreman-tasks",
    "satellite": "satellite",
    "dynflow-sidekiq": "foreman-dynflow-sidekiq",
    "pulpcore": "python3-pulpcore",
    "hammer": "tfm-rubygem-hammer_cli",
}

DEFAULT_PULPCORE_MIGRATION_SERVICES = (
    "rh-redis5-redis",
    "pulpcore-api",
    "pulpcore-content",
    "pulpcore-resource-manager",
    "pulpcore-worker@1",
    "pulpcore-worker@2",
)

DEFAULT_PULP2_PACKAGES = (
    "pulp-server",
    "pulp-rpm-plugins",
    "pulp-docker-plugins",
    "pulp-puppet-plugins",
    "python-pulp-common",
    "rh-mongodb34",
)

DEFAULT_PULP2_DATA_DIRS = (
    Path("/var/lib/pulp/published"),
    Path("/var/lib/pulp/content"),
    Path("/var/lib/mongodb"),
)


@dataclass(slots=True)
class TaskSettings:
    """Task cleanup and drain-polling settings."""

    min_age_days: int = 30
    wait_timeout_seconds: float = 300.0
    retry_interval_seconds: float = 10.0
    links_min_version: str = "4.0.0"


@dataclass(slots=True)
class CapabilitySettings:
    """How installed capabilities are detected."""

    static: str | None = None
    package_query_command: str = DEFAULT_PACKAGE_QUERY_COMMAND
    packages: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CAPABILITY_PACKAGES))


@dataclass(slots=True)
class ContentSettings:
    """Pulp content migration settings."""

    migration_services: tuple[str, ...] = DEFAULT_PULPCORE_MIGRATION_SERVICES
    metadata_root: Path = Path("/var/lib/pulp/published/yum/master/yum_distributor")
    artifact_dir: Path = Path("/var/lib/pulp/media/artifact")
    pulp2_packages: tuple[str, ...] = DEFAULT_PULP2_PACKAGES
    pulp2_data_dirs: tuple[Path, ...] = DEFAULT_PULP2_DATA_DIRS


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_url: str = DEFAULT_DB_URL
    backup_dir: Path = DEFAULT_BACKUP_DIR
    log_level: str = "WARNING"
    log_file: Path | None = None
    tasks: TaskSettings = field(default_factory=TaskSettings)
    capabilities: CapabilitySettings = field(default_factory=CapabilitySettings)
    content: ContentSettings = field(default_factory=ContentSettings)

    @classmethod
    def from_env(cls, db_url: str | None = None) -> Settings:
        """Load settings from environment with defaults for a local installation."""

        log_file = os.getenv("TASKS_MAINT_LOG_FILE", "").strip()
        return cls(
            db_url=db_url or os.getenv("TASKS_MAINT_DB_URL", DEFAULT_DB_URL),
            backup_dir=Path(os.getenv("TASKS_MAINT_BACKUP_DIR", str(DEFAULT_BACKUP_DIR))),
            log_level=os.getenv("TASKS_MAINT_LOG_LEVEL", "WARNING").upper(),
            log_file=Path(log_file) if log_file else None,
            tasks=TaskSettings(
                min_age_days=int(os.getenv("TASKS_MAINT_MIN_AGE_DAYS", "30")),
                wait_timeout_seconds=float(
                    os.getenv("TASKS_MAINT_WAIT_TIMEOUT_SECONDS", "300"),
                ),
                retry_interval_seconds=float(
                    os.getenv("TASKS_MAINT_RETRY_INTERVAL_SECONDS", "10"),
                ),
                links_min_version=os.getenv("TASKS_MAINT_LINKS_MIN_VERSION", "4.0.0"),
            ),
            capabilities=CapabilitySettings(
                static=os.getenv("TASKS_MAINT_CAPABILITIES") or None,
                package_query_command=os.getenv(
                    "TASKS_MAINT_PACKAGE_QUERY_COMMAND",
                    DEFAULT_PACKAGE_QUERY_COMMAND,
                ),
                packages={**DEFAULT_CAPABILITY_PACKAGES, **_collect_package_overrides()},
            ),
            content=ContentSettings(
                migration_services=_env_tuple(
                    "TASKS_MAINT_PULPCORE_MIGRATION_SERVICES",
                    DEFAULT_PULPCORE_MIGRATION_SERVICES,
                ),
                metadata_root=Path(
                    os.getenv(
                        "TASKS_MAINT_PULP_METADATA_ROOT",
                        "/var/lib/pulp/published/yum/master/yum_distributor",
                    ),
                ),
                artifact_dir=Path(
                    os.getenv("TASKS_MAINT_PULP_ARTIFACT_DIR", "/var/lib/pulp/media/artifact"),
                ),
                pulp2_packages=_env_tuple("TASKS_MAINT_PULP2_PACKAGES", DEFAULT_PULP2_PACKAGES),
                pulp2_data_dirs=tuple(
                    Path(value)
                    for value in _env_tuple(
                        "TASKS_MAINT_PULP2_DATA_DIRS",
                        tuple(str(path) for path in DEFAULT_PULP2_DATA_DIRS),
                    )
                ),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error on values the task engine cannot work with."""

        if self.tasks.min_age_days < 0:
            raise ValueError("TASKS_MAINT_MIN_AGE_DAYS must be >= 0.")
        if self.tasks.wait_timeout_seconds <= 0:
            raise ValueError("TASKS_MAINT_WAIT_TIMEOUT_SECONDS must be > 0.")
        if self.tasks.retry_interval_seconds <= 0:
            raise ValueError("TASKS_MAINT_RETRY_INTERVAL_SECONDS must be > 0.")
        if "{package}" not in self.capabilities.package_query_command:
            raise ValueError(
                "TASKS_MAINT_PACKAGE_QUERY_COMMAND must contain a {package} placeholder.",
            )


def _collect_package_overrides() -> dict[str, str]:
    raw = os.getenv("TASKS_MAINT_CAPABILITY_PACKAGES", "").strip()
    if not raw:
        return {}

    overrides: dict[str, str] = {}
    for part in raw.split(","):
        token = part.strip()
        if not token:
            continue
        if "=" not in token:
            raise ValueError(
                "Invalid TASKS_MAINT_CAPABILITY_PACKAGES entry: "
                f"{token!r}. Expected format '<capability>=<package>'.",
            )
        name, package = token.split("=", 1)
        overrides[name.strip()] = package.strip()
    return overrides


def _env_tuple(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())
