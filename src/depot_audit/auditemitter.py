from __future__ import annotations

import csv
import logging
import sys
from collections import deque
from typing import TYPE_CHECKING

from .auditreporter import EXPORT_COLUMNS
from .auditstore import StorageStore

if TYPE_CHECKING:
    from types import TracebackType
    from typing import Protocol

    class _EmitterConfig(Protocol):
        @property
        def emit_stdout(self) -> bool:
            ...

        @property
        def csv_file(self) -> str | None:
            ...

        @property
        def database_path(self) -> str | None:
            ...

        @property
        def batch_size(self) -> int:
            ...


class RecordEmitter:
    """Emit exported storage rows to the configured targets in batches."""

    logger = logging.getLogger(__name__)

    def __init__(self, config: _EmitterConfig) -> None:
        """
        Initialize the emitter.

        Use as a context manager so that queued rows are flushed and the
        database is closed at the end of the run:

            with RecordEmitter(config) as emitter:
                emitter.add_row(row)
        """
        self._config = config
        self._rows: deque[list[str]] = deque()
        self._store: StorageStore | None = None
        self._stdout_started = False
        self._file_started = False
        self._database_started = False
        self.emitted = 0

    def __enter__(self) -> RecordEmitter:
        """Enter a context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Exit a context manager, flushing queued rows on success."""
        try:
            if exc_type is None:
                self.emit()
        finally:
            if self._store is not None:
                self._store.close()
                self._store = None

    def add_row(self, row: list[str]) -> None:
        """Queue a row, emitting the queue once it reaches the batch size."""
        self._rows.append(row)
        if len(self._rows) >= self._config.batch_size:
            self.emit()

    def emit(self) -> None:
        """Emit all queued rows to the configured targets. Empties the queue."""
        count = 0
        while self._rows:
            rows = self._get_rows(self._config.batch_size)

            self.to_stdout(rows)
            self.to_file(rows)
            self.to_database(rows)

            count += len(rows)

        self.emitted += count
        self.logger.debug("Emitted %d rows.", count)

    def _get_rows(self, max_rows: int) -> list[list[str]]:
        """Take up to max_rows rows from the front of the queue."""
        rows: list[list[str]] = []
        while self._rows and len(rows) < max_rows:
            rows.append(self._rows.popleft())

        return rows

    def to_stdout(self, rows: list[list[str]]) -> None:
        """
        Emit rows to stdout as CSV. The header is written before the first row.

        Args:
            rows: A list of rows to emit.
        """
        if not self._config.emit_stdout or not rows:
            return

        writer = csv.writer(sys.stdout, lineterminator="\n")
        if not self._stdout_started:
            writer.writerow(EXPORT_COLUMNS)
            self._stdout_started = True

        writer.writerows(rows)

        self.logger.debug("Emitted %d rows to stdout", len(rows))

    def to_file(self, rows: list[list[str]]) -> None:
        """
        Emit rows to the configured CSV file.

        The file is replaced by the first batch of a run and appended to by
        the following ones.

        Args:
            rows: A list of rows to emit.
        """
        filename = self._config.csv_file
        if not filename or not rows:
            return

        mode = "a" if self._file_started else "w"
        with open(filename, mode, newline="", encoding="utf-8") as file_out:
            writer = csv.writer(file_out)
            if not self._file_started:
                writer.writerow(EXPORT_COLUMNS)
            writer.writerows(rows)

        self._file_started = True
        self.logger.debug("Emitted %d rows to %s", len(rows), filename)

    def to_database(self, rows: list[list[str]]) -> None:
        """
        Emit rows to the storage table of the configured SQLite database.

        Rows left by an earlier run are cleared before the first batch of this
        one is saved.

        Args:
            rows: A list of rows to emit.
        """
        database_path = self._config.database_path
        if not database_path or not rows:
            return

        if self._store is None:
            self._store = StorageStore(database_path)
        if not self._database_started:
            self._store.clear_rows()
            self._database_started = True

        self._store.save_rows(rows)

        self.logger.debug("Emitted %d rows to %s", len(rows), database_path)
