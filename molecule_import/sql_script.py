"""Build the full-replace import script from a parsed molecules export.

The script deletes every row of the six molecule tables and re-inserts the
parsed dataset inside one transaction:

    begin (foreign key checks off)
    DELETE FROM molecule, class, system, property, property_value, molecule_property
    foreign key checks on
    class nodes, system nodes (parents before children)
    property rows and their values
    molecules, each followed by its molecule_property rows
    commit
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .classification import ClassificationForest
from .formatter import Molecule, format_molecule, truncate
from .parser import ParsedDataset
from .properties import PROPERTY_INSERT_ORDER, compose_value_id, property_id

TARGET_TABLES: Sequence[str] = (
    "molecule",
    "class",
    "system",
    "property",
    "property_value",
    "molecule_property",
)

CLASSIFICATION_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "class": ("cl_id", "cl_name", "cl_higher", "cl_level"),
    "system": ("sy_id", "sy_name", "sy_higher", "sy_level"),
}
PROPERTY_COLUMNS: Tuple[str, ...] = ("pr_id", "pr_name")
PROPERTY_VALUE_COLUMNS: Tuple[str, ...] = ("pv_id", "pv_name", "pv_property")
MOLECULE_COLUMNS: Tuple[str, ...] = (
    "mo_id",
    "mo_dci",
    "mo_skeletal_formula",
    "mo_ntr",
    "mo_difficulty",
    "mo_system",
    "mo_class",
)
MOLECULE_PROPERTY_COLUMNS: Tuple[str, ...] = ("mo_id", "pv_id")


@dataclass(frozen=True)
class SqlDialect:
    name: str
    begin: Tuple[str, ...]
    enable_foreign_keys: Tuple[str, ...]
    commit: Tuple[str, ...]
    escape_backslashes: bool


DIALECTS: Dict[str, SqlDialect] = {
    "mysql": SqlDialect(
        name="mysql",
        begin=("START TRANSACTION", "SET AUTOCOMMIT=0", "SET FOREIGN_KEY_CHECKS = 0"),
        enable_foreign_keys=("SET FOREIGN_KEY_CHECKS = 1",),
        commit=("COMMIT", "SET AUTOCOMMIT=1"),
        escape_backslashes=True,
    ),
    # SQLite ignores foreign_keys pragmas inside a transaction, so the toggle
    # wraps BEGIN/COMMIT instead.
    "sqlite": SqlDialect(
        name="sqlite",
        begin=("PRAGMA foreign_keys = OFF", "BEGIN"),
        enable_foreign_keys=(),
        commit=("COMMIT", "PRAGMA foreign_keys = ON"),
        escape_backslashes=False,
    ),
}


def get_dialect(dialect: Any) -> SqlDialect:
    if isinstance(dialect, SqlDialect):
        return dialect
    try:
        return DIALECTS[str(dialect).lower()]
    except KeyError:
        raise ValueError(f"Unsupported SQL dialect {dialect!r}; expected one of {sorted(DIALECTS)}") from None


def sql_literal(value: Any, dialect: SqlDialect) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return "NULL"
        return repr(value)
    text = str(value)
    if dialect.escape_backslashes:
        text = text.replace("\\", "\\\\")
    text = text.replace("'", "''")
    return f"'{text}'"


def insert_into(
    table: str,
    columns: Sequence[str] = (),
    dialect: Any = "mysql",
) -> Callable[..., str]:
    """Return a builder producing one ``INSERT`` statement per value tuple.

    Example:
        insert_into("property", ("pr_id", "pr_name"))(1, "side_effects")
        -> "INSERT INTO property (pr_id, pr_name) VALUES (1, 'side_effects')"
    """

    resolved = get_dialect(dialect)
    column_sql = f" ({', '.join(columns)})" if columns else ""

    def build(*values: Any) -> str:
        if columns and len(values) != len(columns):
            raise ValueError(f"{table}: expected {len(columns)} values, got {len(values)}")
        rendered = ", ".join(sql_literal(v, resolved) for v in values)
        return f"INSERT INTO {table}{column_sql} VALUES ({rendered})"

    return build


def classification_statements(table: str, forest: ClassificationForest, dialect: SqlDialect) -> Iterator[str]:
    insert = insert_into(table, CLASSIFICATION_COLUMNS[table], dialect)
    for node, parent_id, level in forest.iter_preorder():
        yield insert(node.id, truncate(node.name, "classification_value"), parent_id, level)


def property_statements(dataset: ParsedDataset, dialect: SqlDialect) -> Iterator[str]:
    insert_property = insert_into("property", PROPERTY_COLUMNS, dialect)
    insert_value = insert_into("property_value", PROPERTY_VALUE_COLUMNS, dialect)
    for name in PROPERTY_INSERT_ORDER:
        prop_id = property_id(name)
        yield insert_property(prop_id, name)
        for value in dataset.property_values(name):
            yield insert_value(
                compose_value_id(prop_id, value.id),
                truncate(value.name, "property_value"),
                prop_id,
            )


def molecule_statements(molecule: Molecule, dialect: SqlDialect) -> Iterator[str]:
    yield insert_into("molecule", MOLECULE_COLUMNS, dialect)(
        molecule.id,
        molecule.dci,
        molecule.skeletal_formula,
        molecule.ntr,
        molecule.difficulty.value,
        molecule.system,
        molecule.class_,
    )
    insert_link = insert_into("molecule_property", MOLECULE_PROPERTY_COLUMNS, dialect)
    for name, local_ids in molecule.properties.items():
        prop_id = property_id(name)
        for local_id in local_ids:
            yield insert_link(molecule.id, compose_value_id(prop_id, local_id))


class ImportScript:
    """Lazy, restartable sequence of the statements replacing the molecule dataset.

    Every molecule is formatted before the first statement is produced, so a
    bad row raises before any statement reaches the caller.
    """

    def __init__(self, dataset: ParsedDataset, dialect: Any = "mysql") -> None:
        self.dataset = dataset
        self.dialect = get_dialect(dialect)
        self._molecules: Optional[List[Molecule]] = None

    def formatted_molecules(self) -> List[Molecule]:
        if self._molecules is None:
            self._molecules = [format_molecule(raw) for raw in self.dataset.molecules]
        return self._molecules

    def __iter__(self) -> Iterator[str]:
        return self._generate()

    def _generate(self) -> Iterator[str]:
        molecules = self.formatted_molecules()
        dialect = self.dialect

        yield from dialect.begin
        for table in TARGET_TABLES:
            yield f"DELETE FROM {table}"
        yield from dialect.enable_foreign_keys

        yield from classification_statements("class", self.dataset.classes, dialect)
        yield from classification_statements("system", self.dataset.systems, dialect)
        yield from property_statements(self.dataset, dialect)
        for molecule in molecules:
            yield from molecule_statements(molecule, dialect)

        yield from dialect.commit

    def statements(self) -> List[str]:
        return list(self)

    def render(self) -> str:
        statements = self.statements()
        script = "; ".join(statements) + ";"
        logging.info(
            f"Generated import script with {len(statements)} statements",
            extra={"statements": len(statements), "dialect": self.dialect.name},
        )
        return script


def create_import_script(dataset: ParsedDataset, dialect: Any = "mysql") -> str:
    """One-string form of ``ImportScript``, the script handed to the database in one round trip."""
    return ImportScript(dataset, dialect).render()
