from __future__ import annotations

import argparse
import logging
import random
import shutil
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from string import ascii_lowercase

BASE_DIR: Path = Path(__file__).resolve().parent
TEST_DIR: Path = BASE_DIR / "smoketest_depot"
DEPOT_DIR: Path = TEST_DIR / "depots"
CHECKPOINT: Path = TEST_DIR / "checkpoint.1"

CHANCE_OF_MISSING = 0.01  # out of 1.0
CHANCE_OF_SPACES = 0.1
CHANCE_OF_RCS = 0.3
MAX_REVISIONS = 5

# server storage kind | client storage kind
BINARY_FILE_TYPES = [0x1, 0x3, 0x10003, 0x130003]

logger = logging.getLogger(__name__)


def _file_name() -> str:
    """Create a random file name, sometimes with spaces."""
    words = random.randint(2, 4) if random.random() < CHANCE_OF_SPACES else 1
    stems = ["".join(random.choices(ascii_lowercase, k=8)) for _ in range(words)]
    return " ".join(stems) + ".txt"


def _storage_line(depot_file: str, revision: str, file_type: int) -> str:
    """Build a db.storage checkpoint line."""
    return (
        f"@pv@ 3 @db.storage@ @{depot_file}@ @{revision}@ {file_type} 1 "
        f"D41D8CD98F00B204E9800998ECF8427E 12 12 "
        f"D41D8CD98F00B204E9800998ECF8427E 1610000000 \n"
    )


def _rcs_content(revisions: list[str]) -> str:
    """Build an RCS file holding the given revisions, newest first."""
    lines = [f"head\t{revisions[0]};", "access;", "symbols;", "locks;"]
    lines.extend(["", "desc", "@@"])
    for revision in revisions:
        lines.extend(["", "", revision, "log", "@@", "text", f"@{revision}", "@"])
    return "\n".join(lines) + "\n"


def build_smoketest_depot(file_count: int) -> int:
    """Create the depot tree and checkpoint. Return the expected missing count."""
    missing = 0
    DEPOT_DIR.mkdir(parents=True, exist_ok=True)

    with open(CHECKPOINT, "w") as checkpoint:
        for number in range(file_count):
            directory = f"depot/dir{number % 100:02d}"
            depot_file = f"//{directory}/{_file_name()}"
            on_disk = DEPOT_DIR / directory / depot_file.rsplit("/", 1)[-1]
            head = random.randint(1, MAX_REVISIONS)
            revisions = [f"1.{rev}" for rev in range(head, 0, -1)]

            if random.random() < CHANCE_OF_RCS:
                rcs_file = on_disk.with_name(f"{on_disk.name},v")
                rcs_file.parent.mkdir(parents=True, exist_ok=True)
                rcs_file.write_text(_rcs_content(revisions))
                file_type = 0
            else:
                file_type = random.choice(BINARY_FILE_TYPES)
                delta_dir = on_disk.with_name(f"{on_disk.name},d")
                delta_dir.mkdir(parents=True, exist_ok=True)
                for revision in revisions:
                    (delta_dir / f"{revision}.gz").write_bytes(b"")

            for revision in revisions:
                checkpoint.write(_storage_line(depot_file, revision, file_type))

            if random.random() < CHANCE_OF_MISSING:
                checkpoint.write(_storage_line(depot_file, "1.99", file_type))
                missing += 1

    logger.info("Created %s depot files under %s", file_count, DEPOT_DIR)
    return missing


def destroy_smoketest_depot() -> None:
    """Delete the depot tree and checkpoint."""
    logger.debug("Deleting %s", TEST_DIR)
    shutil.rmtree(TEST_DIR, ignore_errors=True)


@contextmanager
def smoketest_runner(file_count: int) -> Generator[int, None, None]:
    """Build the smoketest depot, yield the expected missing count, then clean up."""
    try:
        yield build_smoketest_depot(file_count)

    finally:
        destroy_smoketest_depot()


def parse_args() -> tuple[str, int]:
    """Parse command line arguments, return log level and file count."""
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set the logging level.",
    )
    parser.add_argument(
        "--files",
        type=int,
        default=10_000,
        help="Number of depot files to create.",
    )
    args = parser.parse_args()
    return args.log_level, args.files
