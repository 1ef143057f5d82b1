from __future__ import annotations

import logging
from collections.abc import Iterable
from collections.abc import Iterator

from .auditfiletype import decode_file_type
from .auditindex import RCS_SUFFIX
from .auditindex import VersionedFileIndex
from .auditmodel import DecodedFileType
from .auditmodel import MissingFile
from .auditmodel import StorageRecord
from .auditmodel import VerificationResult

DELTA_SUFFIX = ",d"

# Watch the order here, must match export_row()
EXPORT_COLUMNS = (
    "LibrarianFile",
    "LibrarianRevision",
    "FileType",
    "ServerFileType",
    "ServerFileTypeModifier",
    "RevisionsNumber",
    "ClientFileType",
    "ClientFileTypeModifier",
    "ReferenceCount",
    "MD5OfLibrarianFile",
    "FileSize",
    "FileSizeOnServer",
    "DigestOfCompressedFile",
    "LastUpdateDate",
)

logger = logging.getLogger(__name__)


def export_row(record: StorageRecord) -> list[str]:
    """Flatten a record and its decoded file type into EXPORT_COLUMNS order."""
    decoded = decode_file_type(record.file_type)
    return [
        record.depot_file,
        record.revision,
        hex(record.file_type),
        hex(decoded.server_storage_kind.raw),
        hex(decoded.server_storage_modifier.raw),
        hex(decoded.revisions_retained.raw),
        hex(decoded.client_storage_kind.raw),
        hex(decoded.client_storage_modifier.raw),
        str(record.ref_count),
        record.digest,
        str(record.size),
        str(record.server_size),
        record.compressed_checksum,
        str(record.last_update_date),
    ]


def export_rows(records: Iterable[StorageRecord]) -> Iterator[list[str]]:
    """Yield one export row per record, in input order."""
    for record in records:
        yield export_row(record)


def strip_revision(revision: str) -> str:
    """
    Remove the delimiters around a revision token.

    Journals wrap the librarian revision in `@` (`@1.3@`); a `#1` style token
    loses its leading `#`. Anything else is returned unchanged.
    """
    if len(revision) >= 2 and revision[0] == "@" and revision[-1] == "@":
        return revision[1:-1]
    return revision.removeprefix("#")


def expected_path(record: StorageRecord, decoded: DecodedFileType | None = None) -> str:
    """
    Return the depot-absolute path the record's content should be stored at.

    RCS revisions live inside `<file>,v`, all other kinds in `<file>,d`.
    """
    return candidate_paths(record, decoded)[0]


def candidate_paths(
    record: StorageRecord,
    decoded: DecodedFileType | None = None,
) -> tuple[str, ...]:
    """
    Return the paths the record's content may be stored at, preferred first.

    An RCS typed revision can also have been stored as a full file, so its
    `,d` path is accepted after the `,v` one.
    """
    decoded = decoded or decode_file_type(record.file_type)
    revision = strip_revision(record.revision)
    delta_path = f"{record.depot_file}{DELTA_SUFFIX}/{revision}"

    if decoded.is_rcs:
        return f"{record.depot_file}{RCS_SUFFIX}/{revision}", delta_path
    return (delta_path,)


def verify_records(
    records: Iterable[StorageRecord],
    index: VersionedFileIndex,
    *,
    depot_filter: str = "",
    result: VerificationResult | None = None,
) -> VerificationResult:
    """
    Check that every record has a versioned file on disk.

    A record is present when one of its candidate paths, or the same path with
    a `.gz` suffix, is in the index. Missing records are logged individually and the
    pass always runs to the end.

    Args:
        records: The storage records to check.
        index: The versioned files found on disk.

    Keyword Args:
        depot_filter: Only records whose depot path starts with this prefix
            are checked.
        result: Accumulator to add to. A new one is created if not given.

    Returns:
        The accumulated totals.
    """
    result = result if result is not None else VerificationResult()

    for record in records:
        if depot_filter and not record.depot_file.startswith(depot_filter):
            continue

        decoded = decode_file_type(record.file_type)
        paths = candidate_paths(record, decoded)

        logger.debug(
            "%s (%s - %s) checked",
            record,
            record.file_type,
            decoded.server_storage_kind,
        )

        if not any(index.contains_path_or_gzip(path) for path in paths):
            result.record_missing(
                MissingFile(record.depot_file, record.revision, paths[0])
            )
            logger.warning("Missing %s", paths[0])

        result.processed += 1

    return result
