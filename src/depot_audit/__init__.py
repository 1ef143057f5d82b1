from __future__ import annotations

from .auditconfig import AuditConfig
from .auditfiletype import decode_file_type
from .auditindex import VersionedFileIndex
from .auditindex import build_index
from .auditjournal import ParseError
from .auditjournal import open_journal
from .auditjournal import parse_storage_line
from .auditor import Auditor
from .auditreporter import export_rows
from .auditreporter import verify_records

__all__ = [
    "AuditConfig",
    "Auditor",
    "ParseError",
    "VersionedFileIndex",
    "build_index",
    "decode_file_type",
    "export_rows",
    "open_journal",
    "parse_storage_line",
    "verify_records",
]
