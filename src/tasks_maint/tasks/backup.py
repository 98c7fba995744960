"""On-disk backup bundles of exported task tables."""

from __future__ import annotations

import bz2
import logging
import shutil
from datetime import datetime
from pathlib import Path

from tasks_maint.errors import BackupError

logger = logging.getLogger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
COMPRESSED_SUFFIX = ".bz2"


class BackupBundle:
    """Timestamped directory for one backup run of one state.

    The directory is created on first write and is never reused: a second
    bundle resolving to an existing directory fails instead of overwriting.
    """

    def __init__(self, root: Path, state: str, *, captured_at: datetime) -> None:
        self.directory = (
            root.expanduser() / "backup-tasks" / state / captured_at.strftime(BACKUP_TIMESTAMP_FORMAT)
        )
        self._prepared = False

    def prepare(self) -> Path:
        if not self._prepared:
            try:
                self.directory.mkdir(parents=True, exist_ok=False)
            except FileExistsError as error:
                raise BackupError(f"Backup directory already exists: {self.directory}") from error
            except OSError as error:
                raise BackupError(
                    f"Cannot create backup directory {self.directory}: {error}",
                ) from error
            self._prepared = True
        return self.directory

    def write_compressed_csv(self, file_name: str, csv_text: str) -> Path:
        """Write one CSV, compress it with bzip2 and drop the plaintext copy."""

        directory = self.prepare()
        plain_path = directory / file_name
        compressed_path = plain_path.with_name(plain_path.name + COMPRESSED_SUFFIX)
        try:
            plain_path.write_text(csv_text, "utf-8")
            with plain_path.open("rb") as source, bz2.open(
                compressed_path,
                "wb",
                compresslevel=9,
            ) as target:
                shutil.copyfileobj(source, target)
            plain_path.unlink()
        except OSError as error:
            raise BackupError(f"Cannot write backup file {compressed_path}: {error}") from error
        logger.info("Backup written: %s", compressed_path)
        return compressed_path
