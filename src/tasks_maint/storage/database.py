"""Query backend for the task database."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine, RowMapping
from sqlalchemy.exc import DBAPIError
from sqlalchemy.sql import Executable
from sqlmodel import SQLModel

from tasks_maint.errors import QueryError, ServiceUnavailableError
from tasks_maint.runner import mask
from tasks_maint.storage.common import build_engine, url_password

logger = logging.getLogger(__name__)


class TaskDatabase:
    """Executes read queries, CSV exports and atomic write batches.

    A failing statement is re-checked with a ping: when the database does not
    answer, ``ServiceUnavailableError`` is raised instead of ``QueryError`` so
    callers never mistake an outage for an empty result.
    """

    def __init__(self, db_url: str, *, engine: Engine | None = None) -> None:
        self.db_url = db_url
        self.engine = engine or build_engine(db_url)
        password = url_password(db_url)
        self.hidden_patterns: tuple[str, ...] = (password,) if password else ()

    def close(self) -> None:
        self.engine.dispose()

    def create_schema(self) -> None:
        """Create the task tables; used for local and test databases."""

        with self._translate_errors():
            SQLModel.metadata.create_all(self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except DBAPIError as error:
            logger.debug("Database ping failed: %s", mask(str(error), self.hidden_patterns))
            return False
        return True

    def query(self, statement: Executable) -> list[RowMapping]:
        with self._translate_errors(), self.engine.connect() as connection:
            return list(connection.execute(statement).mappings().all())

    def scalar(self, statement: Executable) -> Any:
        with self._translate_errors(), self.engine.connect() as connection:
            return connection.execute(statement).scalar_one()

    def query_csv(self, statement: Executable) -> str:
        """Run a select and render the result as CSV with a header row."""

        with self._translate_errors(), self.engine.connect() as connection:
            result = connection.execute(statement)
            buffer = io.StringIO()
            writer = csv.writer(buffer, lineterminator="\n")
            writer.writerow(list(result.keys()))
            for row in result:
                writer.writerow(["" if value is None else value for value in row])
        return buffer.getvalue()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """One atomic unit: commits on success, rolls back everything on failure."""

        with self._translate_errors(), self.engine.begin() as connection:
            yield connection

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except DBAPIError as error:
            detail = mask(str(error.orig), self.hidden_patterns)
            if error.connection_invalidated or not self.ping():
                logger.error("Database unavailable: %s", detail)
                raise ServiceUnavailableError(detail) from error
            logger.error("Database statement failed: %s", detail)
            raise QueryError(detail) from error
