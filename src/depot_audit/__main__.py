from __future__ import annotations

import argparse
import logging
from pathlib import Path

from depot_audit.auditconfig import AuditConfig
from depot_audit.auditconfig import write_new_config
from depot_audit.auditor import Auditor

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("depot_audit")


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=str,
        default=None,
        help="An INI configuration file. Command line values take precedence.",
    )
    common.add_argument(
        "--verbose",
        help="Enable debug logging.",
        default=False,
        action="store_true",
    )
    common.add_argument(
        "--log-file",
        help="Enable logging to a file next to the journal file.",
        default=False,
        action="store_true",
    )

    parser = argparse.ArgumentParser(
        prog="depot-audit",
        description="Read the db.storage table of a checkpoint or journal. "
        "Verify the versioned files exist on disk or export the table as CSV.",
    )
    parser.add_argument(
        "--make-config",
        type=str,
        default=None,
        metavar="FILE",
        help="Create a default configuration file and exit.",
    )
    subparsers = parser.add_subparsers(dest="command")

    verify = subparsers.add_parser(
        "verify",
        parents=[common],
        help="Report db.storage records with no versioned file on disk.",
    )
    verify.add_argument("journal", nargs="?", help="The checkpoint or journal.")
    verify.add_argument("depot_root", nargs="?", help="The depot root directory.")
    verify.add_argument(
        "--filter",
        default=None,
        help="Prefix filter to narrow the scanning path, e.g. //depot/project.",
    )
    verify.add_argument(
        "--case-sensitive",
        help="Case-sensitive path matching. Default: False.",
        default=None,
        action="store_true",
    )

    export = subparsers.add_parser(
        "export",
        parents=[common],
        help="Export db.storage records with decoded file types as CSV.",
    )
    export.add_argument("journal", nargs="?", help="The checkpoint or journal.")
    export.add_argument("--csv-file", default=None, help="Write rows to this file.")
    export.add_argument(
        "--database",
        default=None,
        help="Write rows to the storage table of this SQLite database.",
    )
    export.add_argument(
        "--no-stdout",
        help="Do not write rows to stdout.",
        dest="stdout",
        default=None,
        action="store_false",
    )

    namespace = parser.parse_args(args)
    if namespace.command is None and namespace.make_config is None:
        parser.error("a command is required (verify or export)")

    return namespace


def build_config(args: argparse.Namespace) -> AuditConfig:
    """Load the configuration file, if any, and overlay command line values."""
    config = AuditConfig(args.config)
    config.update(
        {
            "audit": {
                "journal_path": args.journal,
                "depot_root": getattr(args, "depot_root", None),
                "filter": getattr(args, "filter", None),
                "case_sensitive": getattr(args, "case_sensitive", None),
            },
            "export": {
                "stdout": getattr(args, "stdout", None),
                "csv_file": getattr(args, "csv_file", None),
                "database_path": getattr(args, "database", None),
            },
        }
    )
    return config


def add_file_handler_to_logging(journal_filepath: str) -> None:
    """Add a file handler to the root logger next to the journal file provided."""
    filepath = Path(journal_filepath).absolute()
    log_filepath = filepath.parent / f"{filepath.stem}.log"
    file_handler = logging.FileHandler(log_filepath)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.getLogger().addHandler(file_handler)


def main(*, cli_args: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(cli_args)

    if args.make_config:
        write_new_config(args.make_config)
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )

    try:
        config = build_config(args)

        if args.log_file:
            add_file_handler_to_logging(config.journal_path)

        auditor = Auditor(config)

        if args.command == "verify":
            auditor.run_verify()

        else:
            auditor.run_export()

    except (OSError, ValueError) as error:
        logger.error("Audit aborted: %s", error)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
