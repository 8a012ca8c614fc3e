"""Command-line interface for Turnos Core.

Examples:
    Import a workbook:
        turnos ingest ./uploads/turnos_septiembre.xlsx

    Read records:
        turnos get 2025-09-03
        turnos range 2025-09-01 2025-09-30 --person ana

    Write one record:
        turnos upsert --date 2025-09-03 --shift tarde --notes "Cobertura"

    Counts:
        turnos stats --from 2025-09-01 --to 2025-09-30

The store is the JSON file given by --store, or TURNOS_STORE_PATH.
Results are printed as JSON; domain errors exit with status 2.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from turnos_core.config import TurnosConfig
from turnos_core.exceptions import TurnosAPIError
from turnos_core.repository import JsonFileRepository
from turnos_core.service import SingleRecordService
from turnos_core.upload import ingest_file

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="turnos", description="Manage daily shift records.")
    p.add_argument("--store", type=Path, default=None, help="JSON store file (default: TURNOS_STORE_PATH)")
    g = p.add_mutually_exclusive_group()
    g.add_argument("--verbose", action="store_true", help="Debug logging")
    g.add_argument("--quiet", action="store_true", help="Less logging")
    sub = p.add_subparsers(dest="command", required=True)

    ing = sub.add_parser("ingest", help="Import rows from a spreadsheet")
    ing.add_argument("path", type=Path, help="Spreadsheet file (.xlsx)")
    ing.add_argument("--sheet", default=None, help="Sheet name (default: first sheet)")

    get = sub.add_parser("get", help="Show the record for a date")
    get.add_argument("date", help="YYYY-MM-DD")
    get.add_argument("--person", default=None, help="Person identifier")

    rng = sub.add_parser("range", help="List records between two dates")
    rng.add_argument("date_from", metavar="from", help="YYYY-MM-DD")
    rng.add_argument("date_to", metavar="to", help="YYYY-MM-DD")
    rng.add_argument("--person", default=None, help="Person identifier")

    up = sub.add_parser("upsert", help="Create or update one record")
    up.add_argument("--date", required=True, help="YYYY-MM-DD or D/M/YYYY")
    up.add_argument("--shift", default=None, help="mañana | tarde | noche")
    up.add_argument("--vacation", action="store_true", help="Mark the day as vacation")
    up.add_argument("--notes", default=None, help="Free text notes")
    up.add_argument("--person", default=None, help="Person identifier")

    st = sub.add_parser("stats", help="Count records per shift")
    st.add_argument("--from", dest="date_from", default=None, help="YYYY-MM-DD")
    st.add_argument("--to", dest="date_to", default=None, help="YYYY-MM-DD")
    st.add_argument("--person", default=None, help="Person identifier")

    return p


def _emit(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")


def run(args: argparse.Namespace, config: TurnosConfig) -> Any:
    """Execute a parsed command and return its JSON-serializable result."""
    repository = JsonFileRepository(config.store_path)
    service = SingleRecordService(repository)

    if args.command == "ingest":
        if args.sheet is not None:
            config.sheet_name = args.sheet
        return ingest_file(args.path, repository, config).to_dict()

    if args.command == "get":
        record = service.get_by_date(args.date, args.person)
        return record.to_dict() if record is not None else None

    if args.command == "range":
        return [r.to_dict() for r in service.get_by_range(args.date_from, args.date_to, args.person)]

    if args.command == "upsert":
        data = {
            "date": args.date,
            "shift": args.shift,
            "vacation": args.vacation,
            "notes": args.notes,
            "personId": args.person,
        }
        return service.upsert_one(data).to_dict()

    if args.command == "stats":
        return service.get_stats(args.date_from, args.date_to, args.person).to_dict()

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    try:
        config = TurnosConfig.from_env()
        if args.store is not None:
            config.store_path = args.store
        result = run(args, config)
    except TurnosAPIError as ex:
        sys.stderr.write(f"error: {ex}\n")
        return 2

    if result is None:
        logger.warning("No record found")
        return 1
    _emit(result)
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        sys.exit(130)
