from __future__ import annotations

import logging
import time

from .auditconfig import AuditConfig
from .auditemitter import RecordEmitter
from .auditindex import VersionedFileIndex
from .auditindex import build_index
from .auditjournal import open_journal
from .auditmodel import ScanCounts
from .auditmodel import VerificationResult
from .auditreporter import export_rows
from .auditreporter import verify_records


class Auditor:
    """Reconcile the db.storage table of a journal against the depot on disk."""

    logger = logging.getLogger(__name__)

    def __init__(self, config: AuditConfig) -> None:
        """
        Initialize a new Auditor.

        Args:
            config: The configuration to use for this auditor.
        """
        self._config = config

    def run_export(self) -> ScanCounts:
        """
        Export every db.storage record of the journal to the configured targets.

        Raises:
            OSError: The journal cannot be opened.
        """
        self.logger.info("Exporting storage records...")
        tic = time.perf_counter()
        counts = ScanCounts()

        with open_journal(self._config.journal_path, counts) as records:
            with RecordEmitter(self._config) as emitter:
                for row in export_rows(records):
                    emitter.add_row(row)

        toc = time.perf_counter()
        self.logger.info("Export finished in %s seconds", toc - tic)
        self._log_scan_summary(counts)

        return counts

    def run_verify(self) -> VerificationResult:
        """
        Verify that every db.storage record has a versioned file on disk.

        The on-disk index is fully built before any record is checked.

        Raises:
            OSError: The journal cannot be opened or the depot root walked.
        """
        counts = ScanCounts()
        index = self.build_index()

        with open_journal(self._config.journal_path, counts) as records:
            self.logger.info("Verifying storage records...")
            tic = time.perf_counter()

            result = verify_records(
                records,
                index,
                depot_filter=self._config.depot_filter,
            )

            toc = time.perf_counter()

        self.logger.info("Verification finished in %s seconds", toc - tic)
        self.logger.info("Processed %s files", result.processed)
        self.logger.info("Missing %s files", result.missing_count)
        self._log_scan_summary(counts)

        return result

    def build_index(self) -> VersionedFileIndex:
        """Walk the depot root and index the versioned files found."""
        self.logger.info("Indexing %s...", self._config.depot_root)
        tic = time.perf_counter()

        index = build_index(
            self._config.depot_root,
            depot_filter=self._config.depot_filter,
            case_sensitive=self._config.case_sensitive,
        )

        toc = time.perf_counter()
        self.logger.info("Indexing finished in %s seconds", toc - tic)

        return index

    def _log_scan_summary(self, counts: ScanCounts) -> None:
        """Log the journal line accounting."""
        self.logger.info(
            "Read %s journal lines: %s storage records, %s skipped",
            counts.lines,
            counts.records,
            counts.skipped,
        )
