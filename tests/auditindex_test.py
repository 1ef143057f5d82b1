from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pytest import LogCaptureFixture

from depot_audit.auditindex import VersionedFileIndex
from depot_audit.auditindex import build_index
from depot_audit.auditindex import normalize_path
from depot_audit.auditindex import read_rcs_revisions
from depot_audit.auditindex import scan_rcs_revisions
from depot_audit.auditindex import walk_tree

FIXTURE_DEPOT = "tests/fixture/depots"

RCS_SINGLE_REVISION = [
    "head\t1.1;",
    "",
    "desc",
    "@@",
    "",
    "1.1",
    "log",
    "@@",
    "text",
    "@content",
    "@",
]


def test_scan_rcs_single_revision() -> None:
    assert list(scan_rcs_revisions(RCS_SINGLE_REVISION)) == ["1.1"]


def test_scan_rcs_strips_line_endings() -> None:
    lines = [f"{line}\r\n" for line in RCS_SINGLE_REVISION]

    assert list(scan_rcs_revisions(lines)) == ["1.1"]


def test_scan_rcs_broken_sentinel_yields_nothing() -> None:
    # Drop the empty log "@@" between "log" and "text"
    lines = RCS_SINGLE_REVISION[:7] + RCS_SINGLE_REVISION[8:]

    assert lines[5:8] == ["1.1", "log", "text"]
    assert list(scan_rcs_revisions(lines)) == []


def test_scan_rcs_fewer_than_four_lines_yields_nothing() -> None:
    assert list(scan_rcs_revisions(["log", "@@", "text"])) == []


def test_scan_rcs_multiple_revisions_across_ring_wrap() -> None:
    lines = ["head\t1.3;"]
    for revision in ("1.3", "1.2", "1.1"):
        lines.extend(["", revision, "log", "@@", "text", "@body", "@"])

    assert list(scan_rcs_revisions(lines)) == ["1.3", "1.2", "1.1"]


def test_scan_rcs_matches_sentinel_wherever_it_appears() -> None:
    lines = ["1.1", "log", "@@", "text", "@one", "log", "@@", "text", "@"]

    # Only the line sequence is matched, so a sentinel run in content counts.
    assert list(scan_rcs_revisions(lines)) == ["1.1", "@one"]


def test_read_rcs_revisions_from_fixture() -> None:
    path = os.path.join(FIXTURE_DEPOT, "depot", "main", "readme.txt,v")

    assert read_rcs_revisions(path) == ["1.2", "1.1"]


@pytest.mark.parametrize(
    "os_path, root, expected",
    [
        ("/p4/depots/depot/a.txt,d/1.1", "/p4/depots", "//depot/a.txt,d/1.1"),
        ("/p4/depots/depot/a.txt,d/1.1", "/p4/depots/", "//depot/a.txt,d/1.1"),
        ("C:\\p4\\depot\\a b.txt,v", "C:\\p4", "//depot/a b.txt,v"),
        ("depots/x/", "depots", "//x"),
    ],
)
def test_normalize_path(os_path: str, root: str, expected: str) -> None:
    assert normalize_path(os_path, root) == expected


def test_index_case_insensitive_matches_any_case() -> None:
    index = VersionedFileIndex(case_sensitive=False)
    index.add("//Foo/Bar.txt,d/1")

    assert "//foo/bar.txt,d/1" in index
    assert "//FOO/BAR.TXT,d/1" in index
    assert len(index) == 1


def test_index_case_sensitive_misses_other_case() -> None:
    index = VersionedFileIndex(case_sensitive=True)
    index.add("//Foo/Bar.txt,d/1")

    assert "//foo/bar.txt,d/1" not in index
    assert "//Foo/Bar.txt,d/1" in index


def test_index_contains_path_or_gzip() -> None:
    index = VersionedFileIndex()
    index.add("//depot/a.bin,d/1.1.gz")

    assert index.contains_path_or_gzip("//depot/a.bin,d/1.1") is True
    assert index.contains_path_or_gzip("//depot/a.bin,d/1.2") is False


def test_walk_tree_yields_files_and_directories() -> None:
    entries = dict(walk_tree(FIXTURE_DEPOT))

    readme = os.path.join(FIXTURE_DEPOT, "depot", "main", "readme.txt,v")
    main = os.path.join(FIXTURE_DEPOT, "depot", "main")
    assert entries[readme] is False
    assert entries[main] is True


def test_walk_tree_raises_on_missing_root() -> None:
    with pytest.raises(NotADirectoryError):
        list(walk_tree("tests/fixture/not_a_depot"))


def test_build_index_from_fixture() -> None:
    index = build_index(FIXTURE_DEPOT)

    assert sorted(index) == [
        "//depot/docs/guide.txt,d/1.1",
        "//depot/main/a file.txt,d/1.1.gz",
        "//depot/main/image.png,d/1.1",
        "//depot/main/readme.txt,v/1.1",
        "//depot/main/readme.txt,v/1.2",
    ]


def test_build_index_case_sensitive_keeps_case() -> None:
    index = build_index(FIXTURE_DEPOT, case_sensitive=True)

    assert "//depot/Docs/Guide.txt,d/1.1" in index
    assert "//depot/docs/guide.txt,d/1.1" not in index


def test_build_index_with_filter_walks_sub_path() -> None:
    index = build_index(FIXTURE_DEPOT, depot_filter="//depot/Docs")

    assert list(index) == ["//depot/docs/guide.txt,d/1.1"]


def test_build_index_uses_supplied_walker() -> None:
    entries = [
        ("/depots/depot/dir", True),
        ("/depots/depot/dir/a.txt,d/1.1", False),
        ("/depots/depot/dir/b.txt,d/1.1.gz", False),
    ]
    walked: list[str] = []

    def walker(root: str):
        walked.append(root)
        return entries

    index = build_index("/depots", walker=walker)

    assert walked == ["/depots"]
    assert sorted(index) == [
        "//depot/dir/a.txt,d/1.1",
        "//depot/dir/b.txt,d/1.1.gz",
    ]


def test_build_index_skips_unreadable_rcs_file(caplog: LogCaptureFixture) -> None:
    entries = [
        ("/depots/depot/a.txt,v", False),
        ("/depots/depot/b.txt,d/1.1", False),
    ]

    with patch(
        "depot_audit.auditindex.read_rcs_revisions",
        side_effect=PermissionError("denied"),
    ):
        index = build_index("/depots", walker=lambda root: entries)

    assert list(index) == ["//depot/b.txt,d/1.1"]
    assert "Skipping RCS file /depots/depot/a.txt,v" in caplog.text


def test_build_index_raises_on_missing_root(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        build_index(str(tmp_path / "missing"))
