"""Command-line entry point for the molecules import.

Examples:
  # Write the MySQL full-replace script next to the export
  molecule-import molecules.csv --output molecules.sql

  # Replace the dataset of a local SQLite database
  molecule-import molecules.csv --dialect sqlite --db-path data/molecules.db

  # Show which file was imported last
  molecule-import --show-last
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from .config import SUPPORTED_DIALECTS, load_settings
from .errors import MoleculeImportError
from .manifest import ImportManifest
from .pipeline import import_into_sqlite, parse_with_settings
from .sql_script import ImportScript


def configure_logging(verbosity: int) -> None:
    level = logging.DEBUG if verbosity > 0 else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Convert a molecules CSV export into a full-replace SQL import.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("csv_path", type=Path, nargs="?", help="Molecules CSV export to import.")
    parser.add_argument("--config", type=Path, help="YAML file overriding environment settings.")
    parser.add_argument("--output", type=Path, help="Write the generated SQL script to this file.")
    parser.add_argument(
        "--db-path",
        type=Path,
        help="Execute the import against this SQLite database (sqlite dialect only).",
    )
    parser.add_argument("--dialect", choices=SUPPORTED_DIALECTS, help="SQL dialect of the generated script.")
    parser.add_argument("--delimiter", help="CSV field delimiter.")
    parser.add_argument("--separator", help="Separator between values inside one cell.")
    parser.add_argument("--dump-json", type=Path, help="Write the parsed intermediate document as JSON.")
    parser.add_argument("--show-last", action="store_true", help="Print the last imported file and exit.")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (repeatable).",
    )
    args = parser.parse_args(argv)
    if not args.show_last and args.csv_path is None:
        parser.error("csv_path is required unless --show-last is given")
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = load_settings(
            args.config,
            dialect=args.dialect or ("sqlite" if args.db_path is not None else None),
            delimiter=args.delimiter,
            value_separator=args.separator,
            db_path=args.db_path,
        )
    except (FileNotFoundError, ValueError) as exc:
        logging.error(f"Invalid configuration: {exc}")
        return 1

    if args.show_last:
        try:
            last = ImportManifest(settings.manifest_path).last_import()
        except MoleculeImportError as exc:
            logging.error(str(exc))
            return 1
        print(json.dumps(last, indent=2) if last else "No import recorded yet.")
        return 0

    if not args.csv_path.exists():
        logging.error(f"CSV export not found: {args.csv_path}")
        return 1

    try:
        if args.db_path is not None:
            summary = import_into_sqlite(args.csv_path, settings)
            print(f"Imported {summary.molecules} molecules into {settings.db_path}")
            return 0

        dataset = parse_with_settings(args.csv_path, settings)
        if args.dump_json:
            args.dump_json.parent.mkdir(parents=True, exist_ok=True)
            args.dump_json.write_text(json.dumps(dataset.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
            logging.info("Wrote parsed document", extra={"path": str(args.dump_json)})

        script = ImportScript(dataset, settings.dialect).render()
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(script + "\n", encoding="utf-8")
            logging.info("Wrote import script", extra={"path": str(args.output)})
        else:
            print(script)
    except (MoleculeImportError, ValueError) as exc:
        logging.error(f"Import aborted: {exc}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
