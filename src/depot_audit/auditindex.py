from __future__ import annotations

import logging
import os
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Iterator

RCS_SUFFIX = ",v"
GZIP_SUFFIX = ".gz"

# Lines preceding a revision's content block, most recent first.
RCS_SENTINEL = ("text", "@@", "log")
RCS_BUFFER_SIZE = len(RCS_SENTINEL) + 1

Walker = Callable[[str], Iterable[tuple[str, bool]]]

logger = logging.getLogger(__name__)


class VersionedFileIndex:
    """Set of depot-absolute paths of the versioned files found on disk."""

    def __init__(self, *, case_sensitive: bool = False) -> None:
        """
        Initialize an empty index.

        Keyword Args:
            case_sensitive: When False, paths are lower-cased both when added
                and when looked up. Defaults to False.
        """
        self.case_sensitive = case_sensitive
        self._paths: set[str] = set()

    def _key(self, path: str) -> str:
        return path if self.case_sensitive else path.lower()

    def add(self, path: str) -> None:
        """Register a path as present on disk."""
        key = self._key(path)
        self._paths.add(key)
        logger.debug("%s added to index", key)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self._key(path) in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)

    def contains_path_or_gzip(self, path: str) -> bool:
        """True if the path, or its compressed variant, is in the index."""
        return path in self or f"{path}{GZIP_SUFFIX}" in self


def normalize_path(os_path: str, depot_root: str) -> str:
    """
    Convert an on-disk path under depot_root to a depot-absolute path.

    Args:
        os_path: The full path of the file on disk.
        depot_root: The directory the depot is stored under.

    Returns:
        The path relative to depot_root with forward slashes, prefixed by `//`.
    """
    relative = os_path.replace(depot_root, "", 1).replace("\\", "/")
    return "//" + relative.strip("/")


def walk_tree(root: str) -> Iterator[tuple[str, bool]]:
    """
    Yield every entry under root with a flag that is True for directories.

    Sub-directories that cannot be read are logged and skipped.

    Raises:
        NotADirectoryError: The root is not a directory that can be walked.
    """
    if not os.path.isdir(root):
        raise NotADirectoryError(f"Cannot walk depot root {root}")

    def _log_walk_error(error: OSError) -> None:
        logger.warning("Skipping unreadable directory: %s", error)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        for dirname in dirnames:
            yield os.path.join(dirpath, dirname), True

        for filename in filenames:
            yield os.path.join(dirpath, filename), False


def scan_rcs_revisions(lines: Iterable[str]) -> Iterator[str]:
    """
    Yield the revision numbers stored in an RCS file, in file order.

    Each revision's content is announced by a `text` line preceded by an
    empty `@@` log and a `log` keyword, which is in turn preceded by the
    revision number. The last four lines are kept in a ring buffer and the
    sentinel is matched backwards from each `text` line.

        1.2
        log
        @@
        text
    """
    ring = [""] * RCS_BUFFER_SIZE
    position = 0
    lines_read = 0

    for line in lines:
        line = line.rstrip("\r\n")
        ring[position] = line
        position = (position + 1) % RCS_BUFFER_SIZE
        lines_read += 1

        if line != RCS_SENTINEL[0] or lines_read < RCS_BUFFER_SIZE:
            continue

        index = (position - 1) % RCS_BUFFER_SIZE
        matched = 0
        while matched < len(RCS_SENTINEL) and ring[index] == RCS_SENTINEL[matched]:
            matched += 1
            index = (index - 1) % RCS_BUFFER_SIZE

        if matched == len(RCS_SENTINEL):
            yield ring[index]


def read_rcs_revisions(filepath: str) -> list[str]:
    """
    Return the revision numbers stored in the RCS file at filepath.

    Raises:
        OSError: The file cannot be opened or read.
    """
    with open(filepath, encoding="utf-8", errors="replace", newline="") as rcs_file:
        return list(scan_rcs_revisions(rcs_file))


def build_index(
    depot_root: str,
    *,
    depot_filter: str = "",
    case_sensitive: bool = False,
    walker: Walker = walk_tree,
) -> VersionedFileIndex:
    """
    Walk depot_root and index every versioned file found.

    RCS files (`,v`) are opened and contribute one `<file>,v/<revision>` entry
    per revision they hold. Every other file is indexed by its own path.

    Args:
        depot_root: The directory the depot is stored under.

    Keyword Args:
        depot_filter: Depot path prefix (e.g. `//depot/project`) narrowing the
            walk to that sub-directory.
        case_sensitive: Whether paths are matched case sensitively.
        walker: Callable yielding `(path, is_directory)` for a root.

    Returns:
        The populated index.

    Raises:
        OSError: The walk root cannot be walked.
    """
    index = VersionedFileIndex(case_sensitive=case_sensitive)

    walk_root = depot_root
    if depot_filter:
        sub_path = depot_filter.strip("/").replace("/", os.sep)
        walk_root = os.path.join(depot_root, sub_path)

    logger.debug("Indexing versioned files under %s", walk_root)
    rcs_count = 0

    for os_path, is_directory in walker(walk_root):
        if is_directory:
            continue

        normalized_path = normalize_path(os_path, depot_root)

        if not normalized_path.endswith(RCS_SUFFIX):
            index.add(normalized_path)
            continue

        try:
            revisions = read_rcs_revisions(os_path)

        except OSError as error:
            logger.warning("Skipping RCS file %s: %s", os_path, error)
            continue

        rcs_count += 1
        for revision in revisions:
            index.add(f"{normalized_path}/{revision}")

    logger.info("Indexed %d paths (%d RCS files)", len(index), rcs_count)

    return index
