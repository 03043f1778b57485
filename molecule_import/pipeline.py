from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Optional, Union

from .config import Settings, load_settings
from .database import connect, ensure_schema, execute_statements
from .manifest import ImportManifest
from .parser import ParsedDataset, parse_molecules_csv, parse_molecules_csv_async
from .sql_script import ImportScript, create_import_script


@dataclass
class ImportSummary:
    molecules: int
    classes: int
    systems: int
    side_effects: int
    indications: int
    interactions: int
    statements: int = 0

    @classmethod
    def from_dataset(cls, dataset: ParsedDataset, statements: int = 0) -> "ImportSummary":
        return cls(
            molecules=len(dataset.molecules),
            classes=len(dataset.classes),
            systems=len(dataset.systems),
            side_effects=len(dataset.side_effects),
            indications=len(dataset.indications),
            interactions=len(dataset.interactions),
            statements=statements,
        )

    def as_counts(self) -> Dict[str, int]:
        return asdict(self)


def parse_with_settings(path: Union[str, Path], settings: Settings) -> ParsedDataset:
    return parse_molecules_csv(
        Path(path),
        delimiter=settings.delimiter,
        value_separator=settings.value_separator,
        encoding=settings.encoding,
    )


def parse_and_create_import_script(path: Union[str, Path], settings: Optional[Settings] = None) -> str:
    """Parse a molecules export and return the SQL script replacing the stored dataset."""

    settings = settings or load_settings()
    dataset = parse_with_settings(path, settings)
    return create_import_script(dataset, settings.dialect)


async def parse_and_create_import_script_async(
    path: Union[str, Path],
    settings: Optional[Settings] = None,
) -> str:
    settings = settings or load_settings()
    dataset = await parse_molecules_csv_async(
        path,
        delimiter=settings.delimiter,
        value_separator=settings.value_separator,
        encoding=settings.encoding,
    )
    return create_import_script(dataset, settings.dialect)


def import_into_sqlite(path: Union[str, Path], settings: Optional[Settings] = None) -> ImportSummary:
    """Full-replace import of ``path`` into the SQLite database named by ``settings.db_path``.

    The manifest is only updated once the script has committed.
    """

    settings = settings or load_settings(dialect="sqlite")
    if settings.dialect != "sqlite":
        raise ValueError("Executing an import against SQLite requires the sqlite dialect")

    source = Path(path)
    manifest = ImportManifest(settings.manifest_path)
    if manifest.is_last_import(source):
        logging.info(f"{source.name} matches the last import, replacing it anyway", extra={"path": str(source)})

    dataset = parse_with_settings(source, settings)
    script = ImportScript(dataset, settings.dialect)
    script.formatted_molecules()

    conn = connect(settings.db_path)
    try:
        ensure_schema(conn)
        executed = execute_statements(conn, script)
    finally:
        conn.close()

    summary = ImportSummary.from_dataset(dataset, statements=executed)
    manifest.record_import(source, summary.as_counts())
    logging.info(
        f"Imported {summary.molecules} molecules from {source.name}",
        extra={"db_path": str(settings.db_path), **summary.as_counts()},
    )
    return summary
