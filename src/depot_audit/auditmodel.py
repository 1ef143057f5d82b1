from __future__ import annotations

import dataclasses

UNRECOGNIZED = "unrecognized"


@dataclasses.dataclass(frozen=True)
class StorageRecord:
    """A db.storage row as read from a journal or checkpoint."""

    depot_file: str
    revision: str
    file_type: int
    ref_count: int
    digest: str
    size: int
    server_size: int
    compressed_checksum: str
    last_update_date: int

    def __str__(self) -> str:
        """Return a string representation of the record."""
        return f"{self.depot_file} [{self.revision}]"


@dataclasses.dataclass(frozen=True)
class FieldValue:
    """One masked sub-field of a packed file type."""

    raw: int
    names: tuple[str, ...]

    @property
    def is_recognized(self) -> bool:
        return UNRECOGNIZED not in self.names

    def __str__(self) -> str:
        """Return the variant names, or the raw value when unrecognized."""
        if not self.is_recognized:
            return f"{UNRECOGNIZED}({hex(self.raw)})"
        return "+".join(self.names)


@dataclasses.dataclass(frozen=True)
class DecodedFileType:
    """Read-only view of the sub-fields packed into a file type integer."""

    file_type: int
    server_storage_kind: FieldValue
    server_storage_modifier: FieldValue
    revisions_retained: FieldValue
    client_storage_kind: FieldValue
    client_storage_modifier: FieldValue

    @property
    def is_rcs(self) -> bool:
        return self.server_storage_kind.names == ("RCS",)


@dataclasses.dataclass(frozen=True)
class MissingFile:
    """A storage record with no matching versioned file on disk."""

    depot_file: str
    revision: str
    expected_path: str

    def __str__(self) -> str:
        """Return a string representation of the missing file."""
        return f"{self.expected_path} ({self.depot_file} {self.revision})"


@dataclasses.dataclass
class VerificationResult:
    """Running totals of a verification pass."""

    processed: int = 0
    missing: list[MissingFile] = dataclasses.field(default_factory=list)

    @property
    def missing_count(self) -> int:
        return len(self.missing)

    def record_missing(self, missing_file: MissingFile) -> None:
        self.missing.append(missing_file)

    def merge(self, other: VerificationResult) -> None:
        """Fold the totals of another pass into this one."""
        self.processed += other.processed
        self.missing.extend(other.missing)


@dataclasses.dataclass
class ScanCounts:
    """Line accounting for a journal scan."""

    lines: int = 0
    records: int = 0
    ignored: int = 0
    skipped: int = 0
