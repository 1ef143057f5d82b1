"""
Decode the packed file type integer carried by db.storage records.

Each sub-field is isolated by its own mask and looked up in a fixed table.
Values are kept masked but unshifted, so a decoded file type can always be
recombined into the integer it came from.
"""
from __future__ import annotations

from collections.abc import Mapping

from .auditmodel import UNRECOGNIZED
from .auditmodel import DecodedFileType
from .auditmodel import FieldValue

SERVER_STORAGE_KIND_MASK = 0xF
SERVER_STORAGE_MODIFIER_MASK = 0xF0
REVISIONS_RETAINED_MASK = 0xF00
CLIENT_STORAGE_KIND_MASK = 0x10D0000
CLIENT_STORAGE_MODIFIER_MASK = 0x720000

SERVER_STORAGE_KINDS: dict[int, str] = {
    0x0: "RCS",
    0x1: "Binary",
    0x2: "Tiny",
    0x3: "Compressed",
    0x4: "TempObj",
    0x5: "Detect",
    0x6: "CompressedTempObj",
    0x7: "BinaryAccess",
    0x8: "External",
}

# 0x40 is exclusive open for regular storage and new temp object for the
# temp object kinds; the bit is the same.
SERVER_STORAGE_MODIFIERS: dict[int, tuple[str, ...]] = {
    0x00: ("None",),
    0x10: ("KeywordExpansion992",),
    0x20: ("KeywordExpansion20001",),
    0x30: ("KeywordExpansionAny",),
    0x40: ("ExclusiveOpen",),
    0x50: ("KeywordExpansion992", "ExclusiveOpen"),
    0x60: ("KeywordExpansion20001", "ExclusiveOpen"),
    0x70: ("KeywordExpansionAny", "ExclusiveOpen"),
}

# Number of revisions kept (+S<n>) by nibble value. Not linear past 10.
RETENTION_COUNTS: dict[int, int] = {
    0x000: 1,
    0x100: 2,
    0x200: 3,
    0x300: 4,
    0x400: 5,
    0x500: 6,
    0x600: 7,
    0x700: 8,
    0x800: 9,
    0x900: 10,
    0xA00: 16,
    0xB00: 32,
    0xC00: 64,
    0xD00: 128,
    0xE00: 256,
    0xF00: 512,
}
REVISIONS_RETAINED: dict[int, str] = {
    value: f"S{count}" for value, count in RETENTION_COUNTS.items()
}

CLIENT_STORAGE_KINDS: dict[int, str] = {
    0x0: "Text",
    0x10000: "Binary",
    0x40000: "Symlink",
    0x50000: "ResourceFork",
    0x80000: "Unicode",
    0x90000: "RawText",
    0xC0000: "AppleData20022",
    0xD0000: "AppleData992",
    0x1000000: "Detect",
}

CLIENT_STORAGE_MODIFIER_FLAGS: dict[int, str] = {
    0x20000: "Executable",
    0x100000: "Writable",
    0x200000: "ModTime",
    0x400000: "Uncompressed",
}

# (field name, mask, table, table holds independent flags)
SUBFIELDS: tuple[tuple[str, int, Mapping[int, str | tuple[str, ...]], bool], ...] = (
    ("server_storage_kind", SERVER_STORAGE_KIND_MASK, SERVER_STORAGE_KINDS, False),
    (
        "server_storage_modifier",
        SERVER_STORAGE_MODIFIER_MASK,
        SERVER_STORAGE_MODIFIERS,
        False,
    ),
    ("revisions_retained", REVISIONS_RETAINED_MASK, REVISIONS_RETAINED, False),
    ("client_storage_kind", CLIENT_STORAGE_KIND_MASK, CLIENT_STORAGE_KINDS, False),
    (
        "client_storage_modifier",
        CLIENT_STORAGE_MODIFIER_MASK,
        CLIENT_STORAGE_MODIFIER_FLAGS,
        True,
    ),
)


def decode_value(value: int, table: Mapping[int, str | tuple[str, ...]]) -> FieldValue:
    """Look up a masked value, falling back to the unrecognized sentinel."""
    names = table.get(value)
    if names is None:
        return FieldValue(value, (UNRECOGNIZED,))
    if isinstance(names, str):
        names = (names,)
    return FieldValue(value, names)


def decode_flags(value: int, table: Mapping[int, str]) -> FieldValue:
    """Split a masked value into the flags it carries."""
    if not value:
        return FieldValue(value, ("None",))

    names = [name for flag, name in table.items() if value & flag]
    leftover = value
    for flag in table:
        leftover &= ~flag

    if leftover:
        names.append(UNRECOGNIZED)

    return FieldValue(value, tuple(names))


def decode_file_type(file_type: int) -> DecodedFileType:
    """
    Decode a packed file type into its sub-fields.

    Never raises for a non-negative integer. Values missing from a table are
    returned as unrecognized with the raw masked value preserved.

    Args:
        file_type: The file type integer from a db.storage record.

    Returns:
        The decoded file type.
    """
    fields: dict[str, FieldValue] = {}
    for name, mask, table, is_flags in SUBFIELDS:
        if is_flags:
            fields[name] = decode_flags(file_type & mask, table)
        else:
            fields[name] = decode_value(file_type & mask, table)

    return DecodedFileType(file_type=file_type, **fields)


def encode_file_type(decoded: DecodedFileType) -> int:
    """
    Recombine the sub-fields of a decoded file type into an integer.

    Bits outside of the five masks are not represented by the sub-fields
    and are not restored.
    """
    file_type = 0
    for name, mask, _, _ in SUBFIELDS:
        file_type |= getattr(decoded, name).raw & mask
    return file_type
