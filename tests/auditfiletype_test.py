from __future__ import annotations

import itertools

import pytest

from depot_audit.auditfiletype import CLIENT_STORAGE_KINDS
from depot_audit.auditfiletype import CLIENT_STORAGE_MODIFIER_FLAGS
from depot_audit.auditfiletype import RETENTION_COUNTS
from depot_audit.auditfiletype import SERVER_STORAGE_MODIFIERS
from depot_audit.auditfiletype import decode_file_type
from depot_audit.auditfiletype import decode_flags
from depot_audit.auditfiletype import encode_file_type
from depot_audit.auditmodel import UNRECOGNIZED


def _client_modifier_combinations() -> list[int]:
    flags = list(CLIENT_STORAGE_MODIFIER_FLAGS)
    combinations = []
    for size in range(len(flags) + 1):
        for combination in itertools.combinations(flags, size):
            combinations.append(sum(combination))
    return combinations


def test_decode_zero_is_rcs_text() -> None:
    decoded = decode_file_type(0)

    assert decoded.file_type == 0
    assert decoded.is_rcs is True
    assert decoded.server_storage_kind.names == ("RCS",)
    assert decoded.server_storage_modifier.names == ("None",)
    assert decoded.revisions_retained.names == ("S1",)
    assert decoded.client_storage_kind.names == ("Text",)
    assert decoded.client_storage_modifier.names == ("None",)


@pytest.mark.parametrize(
    "file_type, expected",
    [
        (0x0, "RCS"),
        (0x1, "Binary"),
        (0x2, "Tiny"),
        (0x3, "Compressed"),
        (0x4, "TempObj"),
        (0x5, "Detect"),
        (0x6, "CompressedTempObj"),
        (0x7, "BinaryAccess"),
        (0x8, "External"),
    ],
)
def test_decode_server_storage_kind(file_type: int, expected: str) -> None:
    assert decode_file_type(file_type).server_storage_kind.names == (expected,)


def test_decode_binary_plus_executable_writable() -> None:
    # binary+xw, compressed on the server
    decoded = decode_file_type(0x130003)

    assert decoded.server_storage_kind.names == ("Compressed",)
    assert decoded.client_storage_kind.names == ("Binary",)
    assert decoded.client_storage_kind.raw == 0x10000
    assert decoded.client_storage_modifier.names == ("Executable", "Writable")
    assert decoded.client_storage_modifier.raw == 0x120000


@pytest.mark.parametrize(
    "file_type, expected",
    [
        (0x000, "S1"),
        (0x900, "S10"),
        (0xA00, "S16"),
        (0xB00, "S32"),
        (0xF00, "S512"),
    ],
)
def test_decode_revisions_retained(file_type: int, expected: str) -> None:
    assert decode_file_type(file_type).revisions_retained.names == (expected,)


def test_retention_counts_are_not_linear() -> None:
    assert len(RETENTION_COUNTS) == 16
    assert sorted(RETENTION_COUNTS.values()) == [
        1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 16, 32, 64, 128, 256, 512
    ]


def test_decode_unknown_server_storage_kind_keeps_raw_value() -> None:
    decoded = decode_file_type(0xB)

    assert decoded.server_storage_kind.names == (UNRECOGNIZED,)
    assert decoded.server_storage_kind.raw == 0xB
    assert decoded.server_storage_kind.is_recognized is False
    assert str(decoded.server_storage_kind) == "unrecognized(0xb)"
    assert decoded.is_rcs is False


def test_decode_unknown_client_storage_kind_keeps_raw_value() -> None:
    decoded = decode_file_type(0x1010000)

    assert decoded.client_storage_kind.is_recognized is False
    assert decoded.client_storage_kind.raw == 0x1010000


def test_decode_server_modifier_above_table_is_unrecognized() -> None:
    decoded = decode_file_type(0x80)

    assert decoded.server_storage_modifier.is_recognized is False
    assert decoded.server_storage_modifier.raw == 0x80


def test_decode_flags_marks_leftover_bits() -> None:
    result = decode_flags(0x3, {0x1: "One"})

    assert result.names == ("One", UNRECOGNIZED)
    assert result.raw == 0x3


def test_decode_never_raises_for_large_values() -> None:
    decoded = decode_file_type(0xFFFFFFFFFF)

    assert decoded.file_type == 0xFFFFFFFFFF
    assert decoded.server_storage_kind.raw == 0xF
    assert decoded.client_storage_modifier.raw == 0x720000


def test_decode_encode_round_trip_over_all_combinations() -> None:
    combinations = itertools.product(
        range(9),
        SERVER_STORAGE_MODIFIERS,
        RETENTION_COUNTS,
        CLIENT_STORAGE_KINDS,
        _client_modifier_combinations(),
    )

    for parts in combinations:
        file_type = sum(parts)
        decoded = decode_file_type(file_type)

        assert encode_file_type(decoded) == file_type
        assert decode_file_type(encode_file_type(decoded)) == decoded
        assert decoded.server_storage_kind.is_recognized
        assert decoded.server_storage_modifier.is_recognized
        assert decoded.revisions_retained.is_recognized
        assert decoded.client_storage_kind.is_recognized
        assert decoded.client_storage_modifier.is_recognized


def test_encode_drops_bits_outside_masks() -> None:
    decoded = decode_file_type(0x80000000 | 0x1)

    assert encode_file_type(decoded) == 0x1
