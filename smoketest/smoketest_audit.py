from __future__ import annotations

import logging

from smoketest_depot import CHECKPOINT
from smoketest_depot import DEPOT_DIR
from smoketest_depot import parse_args
from smoketest_depot import smoketest_runner

from depot_audit.auditconfig import AuditConfig
from depot_audit.auditor import Auditor


def main() -> int:
    """Run both audit modes against a generated depot."""
    level, file_count = parse_args()
    logging.basicConfig(level=level, format="%(asctime)s %(message)s")

    config = AuditConfig.from_dict(
        {
            "audit": {"journal_path": str(CHECKPOINT), "depot_root": str(DEPOT_DIR)},
            "export": {"stdout": False, "database_path": ":memory:"},
        }
    )
    auditor = Auditor(config)

    with smoketest_runner(file_count) as expected_missing:
        result = auditor.run_verify()
        auditor.run_export()

    if result.missing_count != expected_missing:
        print(f"Expected {expected_missing} missing, found {result.missing_count}")
        return 1

    print(f"Verified {result.processed} records, {expected_missing} missing")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
