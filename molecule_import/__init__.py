"""
Molecule import pipeline: parse the pharmacology CSV export and build the
full-replace SQL script for the molecule tables.
"""

from .classification import ClassificationForest, ClassificationNode  # noqa: F401
from .columns import (  # noqa: F401
    DEFAULT_COLUMNS,
    ColumnKind,
    ColumnSpec,
    hierarchy_level,
    match_title,
    resolve_column,
)
from .errors import (  # noqa: F401
    ColumnContractError,
    FormatError,
    ImportExecutionError,
    MalformedRowError,
    MoleculeImportError,
    UnknownPropertyError,
)
from .formatter import Difficulty, Molecule, RawMolecule, format_molecule  # noqa: F401
from .parser import ParsedDataset, parse_molecules_csv, parse_molecules_csv_async  # noqa: F401
from .pipeline import (  # noqa: F401
    ImportSummary,
    import_into_sqlite,
    parse_and_create_import_script,
    parse_and_create_import_script_async,
)
from .properties import PROPERTY_IDS, PropertyValue, PropertyValueRegistry, compose_value_id  # noqa: F401
from .sql_script import ImportScript, create_import_script, insert_into  # noqa: F401

__all__ = [
    "ClassificationForest",
    "ClassificationNode",
    "DEFAULT_COLUMNS",
    "ColumnKind",
    "ColumnSpec",
    "hierarchy_level",
    "match_title",
    "resolve_column",
    "ColumnContractError",
    "FormatError",
    "ImportExecutionError",
    "MalformedRowError",
    "MoleculeImportError",
    "UnknownPropertyError",
    "Difficulty",
    "Molecule",
    "RawMolecule",
    "format_molecule",
    "ParsedDataset",
    "parse_molecules_csv",
    "parse_molecules_csv_async",
    "ImportSummary",
    "import_into_sqlite",
    "parse_and_create_import_script",
    "parse_and_create_import_script_async",
    "PROPERTY_IDS",
    "PropertyValue",
    "PropertyValueRegistry",
    "compose_value_id",
    "ImportScript",
    "create_import_script",
    "insert_into",
]
