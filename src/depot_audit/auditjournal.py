from __future__ import annotations

import logging
import re
from collections.abc import Generator
from collections.abc import Iterable
from collections.abc import Iterator
from contextlib import contextmanager

from .auditmodel import ScanCounts
from .auditmodel import StorageRecord

SET_VALUE_MARKER = "@pv@"
STORAGE_TABLE_MARKER = "@db.storage@"

# Entry type, version and table name followed by the nine db.storage fields.
STORAGE_FIELD_COUNT = 12

FIELD_FILENAME = 3
FIELD_REVISION = 4
FIELD_TYPE = 5
FIELD_REF_COUNT = 6
FIELD_DIGEST = 7
FIELD_SIZE = 8
FIELD_SERVER_SIZE = 9
FIELD_COMPRESSED_CHECKSUM = 10
FIELD_DATE = 11

_SIGNED_INT = re.compile(r"^-?[0-9]+$")
_UNSIGNED_INT = re.compile(r"^[0-9]+$")

logger = logging.getLogger(__name__)


class ParseError(ValueError):
    """A db.storage line that cannot be turned into a record."""


def _parse_int(token: str, field_name: str, *, signed: bool = True) -> int:
    """Parse an integer token, raising ParseError on failure."""
    pattern = _SIGNED_INT if signed else _UNSIGNED_INT
    if not pattern.match(token):
        raise ParseError(f"Could not parse {field_name}: {token!r}")
    return int(token)


def parse_storage_line(line: str) -> StorageRecord | None:
    """
    Parse a single journal line into a StorageRecord.

    The filename is the only field that may contain spaces. Any tokens past
    the expected field count belong to the filename, and every field after
    the filename is shifted by that many positions.

    Args:
        line: A line of a journal or checkpoint, with or without line ending
            and the trailing space that precedes it.

    Returns:
        The record, or None when the line is not a db.storage record.

    Raises:
        ParseError: The line is a db.storage record but is malformed.
    """
    parts = line.rstrip("\r\n").split(" ")
    if parts[-1] == "":
        parts.pop()
    if len(parts) < 4:
        return None
    if parts[0] != SET_VALUE_MARKER or parts[2] != STORAGE_TABLE_MARKER:
        return None

    extra = len(parts) - STORAGE_FIELD_COUNT
    if extra < 0:
        raise ParseError(
            f"Expected at least {STORAGE_FIELD_COUNT} fields, got {len(parts)}"
        )

    filename = " ".join(parts[FIELD_FILENAME : FIELD_FILENAME + extra + 1])

    return StorageRecord(
        depot_file=filename.strip("@"),
        revision=parts[FIELD_REVISION + extra],
        file_type=_parse_int(parts[FIELD_TYPE + extra], "file type", signed=False),
        ref_count=_parse_int(parts[FIELD_REF_COUNT + extra], "reference count"),
        digest=parts[FIELD_DIGEST + extra],
        size=_parse_int(parts[FIELD_SIZE + extra], "size"),
        server_size=_parse_int(parts[FIELD_SERVER_SIZE + extra], "server size"),
        compressed_checksum=parts[FIELD_COMPRESSED_CHECKSUM + extra],
        last_update_date=_parse_int(parts[FIELD_DATE + extra], "date"),
    )


def scan_journal(
    lines: Iterable[str],
    counts: ScanCounts | None = None,
) -> Iterator[StorageRecord]:
    """
    Yield a StorageRecord for every db.storage line, one line at a time.

    Malformed records are logged and counted as skipped. Lines for other
    tables are counted as ignored.

    Args:
        lines: Journal lines, typically an open file.
        counts: Accumulator updated as lines are consumed.
    """
    counts = counts if counts is not None else ScanCounts()

    for line_number, line in enumerate(lines, start=1):
        counts.lines += 1
        try:
            record = parse_storage_line(line)

        except ParseError as error:
            counts.skipped += 1
            logger.warning(
                "Skipping line %d: %s: %s", line_number, error, line.rstrip("\r\n")
            )
            continue

        if record is None:
            counts.ignored += 1
            continue

        counts.records += 1
        logger.debug("%s (%s) scanned", record, record.file_type)
        yield record


@contextmanager
def open_journal(
    path: str,
    counts: ScanCounts | None = None,
) -> Generator[Iterator[StorageRecord], None, None]:
    """
    Open the journal at path and provide an iterator of its db.storage records.

    The file is opened on entry and closed on exit, whether or not the
    records were consumed. For example:

        with open_journal("checkpoint.1") as records:
            for record in records:
                ...

    Raises:
        OSError: The journal cannot be opened.
    """
    logger.debug("Reading journal %s", path)
    with open(path, encoding="utf-8", errors="surrogateescape", newline="") as journal:
        yield scan_journal(journal, counts)
