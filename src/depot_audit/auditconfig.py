from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from configparser import ConfigParser

NEW_CONFIG = """\
[audit]
# The checkpoint or journal holding the db.storage table.
journal_path = {journal}
# The directory the versioned files are stored under (verify only).
depot_root = /p4/1/depots

# Only check depot paths starting with this prefix, e.g. //depot/project
filter =
case_sensitive = false

[export]
# Export targets for db.storage rows.
stdout = true
csv_file =
database_path = {database}
batch_size = 500

    """


class AuditConfig:
    """Configuration for a depot audit run."""

    logger = logging.getLogger("depot_audit.AuditConfig")

    def __init__(self, filepath: str | None = None) -> None:
        """
        Load the configuration from the given file.

        Args:
            filepath: An INI file. When None, an empty configuration is
                created to be filled with `update()`.

        Raises:
            ValueError: The file cannot be read.
        """
        # Depot paths escape @ and # as %40 and %23.
        self._config = ConfigParser(interpolation=None)
        if filepath is None:
            return

        success = self._config.read(filepath)

        if not success:
            raise ValueError(f"Could not read config file at {filepath}")

        self.logger.debug("Loaded config from %s", filepath)

    @classmethod
    def from_dict(cls, values: Mapping[str, Mapping[str, object]]) -> AuditConfig:
        """Build a configuration from a mapping of sections to options."""
        config = cls()
        config.update(values)
        return config

    def update(self, values: Mapping[str, Mapping[str, object]]) -> None:
        """Override options, skipping any option whose value is None."""
        for section, options in values.items():
            if not self._config.has_section(section):
                self._config.add_section(section)

            for option, value in options.items():
                if value is None:
                    continue
                if isinstance(value, bool):
                    value = "true" if value else "false"
                self._config.set(section, option, str(value))

    @property
    def journal_path(self) -> str:
        """Return the path of the journal to read. Will raise if not set."""
        return self._required("audit", "journal_path")

    @property
    def depot_root(self) -> str:
        """Return the directory holding the versioned files. Will raise if not set."""
        return self._required("audit", "depot_root")

    @property
    def depot_filter(self) -> str:
        """Return the depot path prefix to narrow the audit to, or empty."""
        return self._config.get("audit", "filter", fallback="").strip()

    @property
    def case_sensitive(self) -> bool:
        """Return whether depot paths are matched case sensitively."""
        return self._config.getboolean("audit", "case_sensitive", fallback=False)

    @property
    def emit_stdout(self) -> bool:
        """Return whether to emit exported rows to stdout."""
        return self._config.getboolean("export", "stdout", fallback=True)

    @property
    def csv_file(self) -> str | None:
        """Return the CSV file to export rows to, if any."""
        return self._config.get("export", "csv_file", fallback="").strip() or None

    @property
    def database_path(self) -> str | None:
        """Return the SQLite database to export rows to, if any."""
        return self._config.get("export", "database_path", fallback="").strip() or None

    @property
    def batch_size(self) -> int:
        """Return the number of rows to queue before emitting."""
        return max(self._config.getint("export", "batch_size", fallback=500), 1)

    def _required(self, section: str, option: str) -> str:
        """Return a non-empty option, raising ValueError when missing."""
        value = self._config.get(section, option, fallback="").strip()
        if not value:
            raise ValueError(f"Missing required option '{option}' in [{section}]")
        return value


def write_new_config(filename: str) -> None:
    """Write a new config file if one does not exist."""
    if os.path.exists(filename):
        return

    stem = os.path.splitext(filename)[0]
    config = NEW_CONFIG.format(journal=f"{stem}.ckp", database=f"{stem}.db")

    with open(filename, "w") as config_file:
        config_file.write(config)
