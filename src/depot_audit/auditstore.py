from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from contextlib import closing
from typing import TYPE_CHECKING

from .auditreporter import EXPORT_COLUMNS

if TYPE_CHECKING:
    from types import TracebackType


class StorageStore:
    """SQLite table of exported db.storage rows, ready for ad hoc SQL."""

    logger = logging.getLogger("depot_audit.StorageStore")

    def __init__(self, database_path: str = ":memory:") -> None:
        """
        Initialize a new StorageStore connected to the given path.

        It is recommended to use the `with` statement to ensure the rows are
        committed and the connection is closed. For example:

            with StorageStore("storage.db") as store:
                store.save_rows(rows)

        Args:
            database_path: The path to the database file. Defaults to an
                in-memory database.
        """
        self.logger.debug("Initializing StorageStore at %s", database_path)
        self._connection = sqlite3.connect(database_path)

        self._create_storage_table()

    def __enter__(self) -> StorageStore:
        """Enter a context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Exit a context manager, committing only when no error was raised."""
        if exc_type is None:
            self._connection.commit()
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        self._connection.close()

    def _create_storage_table(self) -> None:
        """Create the storage table if it does not already exist."""
        # Every column is kept as text, exactly as exported. File type fields
        # are hex strings, casting is left to the queries.
        columns = ",\n".join(f"{column} TEXT NOT NULL" for column in EXPORT_COLUMNS)
        self._connection.execute(f"CREATE TABLE IF NOT EXISTS storage (\n{columns}\n)")
        self.logger.debug("Created storage table")

    def save_rows(self, rows: Sequence[Sequence[str]]) -> None:
        """Insert the given export rows."""
        self.logger.debug("Saving %s rows", len(rows))
        placeholders = ", ".join("?" for _ in EXPORT_COLUMNS)
        with closing(self._connection.cursor()) as cursor:
            cursor.executemany(
                f"INSERT INTO storage VALUES ({placeholders})",
                [tuple(row) for row in rows],
            )
            self._connection.commit()

    def clear_rows(self) -> None:
        """Delete every row from the storage table."""
        with closing(self._connection.cursor()) as cursor:
            cursor.execute("DELETE FROM storage")
            self.logger.debug("Cleared %s rows", cursor.rowcount)
            self._connection.commit()

    def count_rows(self) -> int:
        """Return the number of rows in the storage table."""
        with closing(self._connection.cursor()) as cursor:
            cursor.execute("SELECT COUNT(*) FROM storage")
            return cursor.fetchone()[0]

    def get_rows(self) -> list[tuple[str, ...]]:
        """Return every stored row in insertion order."""
        with closing(self._connection.cursor()) as cursor:
            cursor.execute("SELECT * FROM storage ORDER BY rowid")
            return cursor.fetchall()
