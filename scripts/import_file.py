"""Run a bulk enrollment import from the command line.

Backends come from PLANLINK_* environment settings, as for the API.

Usage:
    python scripts/import_file.py census.xlsx --group-id grp-demo --plan-start-date 2025-01-01
    python scripts/import_file.py medicare.csv --kind medicare
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from planlink.core.config import AppSettings
from planlink.core.exceptions import ImportFileError
from planlink.enrollment.upserter import EnrollmentUpserter
from planlink.ingest.importer import BulkImporter
from planlink.persistence import create_persistence


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import a PlanLink enrollment file")
    parser.add_argument("path", type=Path, help="CSV or Excel file")
    parser.add_argument("--kind", choices=["group", "medicare"], default="group", help="Upload format")
    parser.add_argument("--group-id", default="", help="Group for group uploads")
    parser.add_argument("--plan-start-date", default="", help="Plan start date for group uploads")
    args = parser.parse_args(argv)

    settings = AppSettings()
    logging.basicConfig(level=settings.log_level)
    store, _cache, _file_store = create_persistence(settings)

    importer = BulkImporter(
        EnrollmentUpserter(store, year_pivot=settings.imports.two_digit_year_pivot),
        max_rows=settings.imports.max_rows,
        year_pivot=settings.imports.two_digit_year_pivot,
    )
    data = args.path.read_bytes()
    try:
        if args.kind == "medicare":
            report = importer.import_medicare_file(data, args.path.name)
        else:
            report = importer.import_group_file(
                data, args.path.name, args.group_id, args.plan_start_date,
            )
    except ImportFileError as exc:
        print(f"Import failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(report.to_payload(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
