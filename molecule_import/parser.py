"""Read the molecules CSV export into a typed intermediate document.

The export has one row per molecule. Classification columns come in numbered
levels (``SYSTEME_1``, ``SYSTEME_2``...) and are folded into two forests while
multi-valued columns (indications, side effects, interactions) are deduplicated
into per-property value lists. The result feeds ``sql_script.ImportScript``.
"""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .classification import ClassificationForest
from .columns import DEFAULT_COLUMNS, REQUIRED_PROPERTIES, ColumnSpec, hierarchy_level, resolve_column
from .errors import ColumnContractError, MalformedRowError
from .formatter import RawMolecule
from .properties import PROPERTY_DOCUMENT_KEYS, PROPERTY_IDS, PropertyValue, PropertyValueRegistry

DEFAULT_DELIMITER = ","
DEFAULT_VALUE_SEPARATOR = ";"
DEFAULT_ENCODING = "utf-8"

TRUE_FLAGS = {"1", "x", "oui", "o", "vrai", "true", "yes", "y"}

Source = Union[str, Path, IO[str], IO[bytes]]


@dataclass
class ColumnLayout:
    """Physical column positions for each registered property."""

    unique: Dict[str, int] = field(default_factory=dict)
    hierarchical: Dict[str, List[int]] = field(default_factory=dict)
    multi_valued: Dict[str, List[int]] = field(default_factory=dict)
    ignored: List[str] = field(default_factory=list)


@dataclass
class ParsedDataset:
    classes: ClassificationForest
    systems: ClassificationForest
    side_effects: List[PropertyValue]
    indications: List[PropertyValue]
    interactions: List[PropertyValue]
    molecules: List[RawMolecule]

    def property_values(self, property_name: str) -> List[PropertyValue]:
        if property_name not in PROPERTY_IDS:
            raise KeyError(property_name)
        return getattr(self, property_name)

    def to_dict(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {
            "classes": self.classes.to_list(),
            "systems": self.systems.to_list(),
        }
        for name, key in PROPERTY_DOCUMENT_KEYS.items():
            document[key] = [{"id": v.id, "name": v.name} for v in self.property_values(name)]
        document["molecules"] = [m.to_dict() for m in self.molecules]
        return document


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def parse_flag(value: Any) -> bool:
    return _cell(value).lower() in TRUE_FLAGS


def parse_number(value: Any, row_number: int, column: str) -> Optional[Union[int, float]]:
    """Parse a numeric cell; blank cells give ``None``, anything else non-numeric aborts the import."""

    text = _cell(value).replace(",", ".")
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        raise MalformedRowError(row_number, column, value) from None
    if number != number or number in (float("inf"), float("-inf")):
        raise MalformedRowError(row_number, column, value, reason="not a finite number")
    return int(number) if number.is_integer() else number


def split_values(value: Any, separator: str = DEFAULT_VALUE_SEPARATOR) -> List[str]:
    """Split a multi-valued cell, dropping blanks and repeats while keeping first-seen order."""

    text = _cell(value)
    if not text:
        return []
    parts = text.split(separator) if separator else [text]
    values: List[str] = []
    seen = set()
    for part in parts:
        token = part.strip()
        if token and token not in seen:
            seen.add(token)
            values.append(token)
    return values


def resolve_layout(headers: Sequence[Any], columns: Sequence[ColumnSpec] = DEFAULT_COLUMNS) -> ColumnLayout:
    layout = ColumnLayout()
    levels: Dict[str, List[Tuple[int, int]]] = {}

    for position, raw_header in enumerate(headers):
        header = _cell(raw_header)
        spec = resolve_column(header, columns)
        if spec is None:
            layout.ignored.append(header)
            logging.debug("Ignoring unregistered column", extra={"header": header, "position": position})
            continue

        if spec.is_unique():
            if spec.property in layout.unique:
                raise ColumnContractError(f"Column {header!r} appears more than once")
            layout.unique[spec.property] = position
        elif spec.is_hierarchical():
            level = hierarchy_level(spec, header)
            taken = levels.setdefault(spec.property, [])
            if any(existing == level for existing, _ in taken):
                raise ColumnContractError(f"Level {level} of {spec.property!r} appears more than once")
            taken.append((level, position))
        else:
            layout.multi_valued.setdefault(spec.property, []).append(position)

    for prop, taken in levels.items():
        taken.sort()
        numbers = [level for level, _ in taken]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ColumnContractError(f"Levels of {prop!r} must run from 1 without gaps, got {numbers}")
        layout.hierarchical[prop] = [position for _, position in taken]

    missing = [prop for prop in REQUIRED_PROPERTIES if prop not in layout.unique]
    if missing:
        raise ColumnContractError(f"Missing required columns: {', '.join(sorted(missing))}")

    logging.debug(
        "Resolved CSV column layout",
        extra={
            "unique": dict(layout.unique),
            "hierarchical": {k: list(v) for k, v in layout.hierarchical.items()},
            "multi_valued": {k: list(v) for k, v in layout.multi_valued.items()},
            "ignored": list(layout.ignored),
        },
    )
    return layout


def read_csv_frame(
    source: Source,
    delimiter: str = DEFAULT_DELIMITER,
    encoding: str = DEFAULT_ENCODING,
) -> pd.DataFrame:
    """Load every cell as text. The header is kept as row 0 so repeated titles survive."""

    try:
        return pd.read_csv(
            source,
            sep=delimiter,
            header=None,
            dtype=str,
            keep_default_na=False,
            encoding=encoding,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        raise ColumnContractError("CSV export is empty, a header row is required") from None
    except pd.errors.ParserError as exc:
        # Typically a row with more fields than the header (trailing delimiter).
        raise ColumnContractError(f"CSV export has rows that do not match the header: {exc}") from exc


def parse_molecules_frame(
    frame: pd.DataFrame,
    *,
    value_separator: str = DEFAULT_VALUE_SEPARATOR,
    columns: Sequence[ColumnSpec] = DEFAULT_COLUMNS,
) -> ParsedDataset:
    if frame.empty:
        raise ColumnContractError("CSV export is empty, a header row is required")

    layout = resolve_layout(list(frame.iloc[0]), columns)

    # Fresh state per parse; nothing is shared between imports.
    forests = {
        "classes": ClassificationForest("class"),
        "systems": ClassificationForest("system"),
    }
    registry = PropertyValueRegistry()
    molecules: List[RawMolecule] = []

    for row_number, row in enumerate(frame.iloc[1:].itertuples(index=False, name=None), start=1):
        if not any(_cell(value) for value in row):
            continue

        def unique(prop: str) -> Any:
            position = layout.unique.get(prop)
            return row[position] if position is not None else None

        leaves: Dict[str, Optional[int]] = {}
        for prop, forest in forests.items():
            path: List[str] = []
            for position in layout.hierarchical.get(prop, []):
                name = _cell(row[position])
                if not name:
                    break
                path.append(name)
            leaves[prop] = forest.add_path(path)

        properties: Dict[str, List[int]] = {}
        for prop in PROPERTY_IDS:
            ids: List[int] = []
            for position in layout.multi_valued.get(prop, []):
                for value in split_values(row[position], value_separator):
                    local_id = registry.resolve_value_id(prop, value)
                    if local_id not in ids:
                        ids.append(local_id)
            properties[prop] = ids

        molecule = RawMolecule(
            id=len(molecules) + 1,
            dci=_cell(unique("dci")),
            skeletal_formula=_cell(unique("skeletal_formula")),
            ntr=parse_number(unique("ntr"), row_number, "MTE"),
            level_easy=parse_flag(unique("level_easy")),
            level_hard=parse_flag(unique("level_hard")),
            system=leaves["systems"],
            class_=leaves["classes"],
            properties=properties,
        )
        if not molecule.dci:
            logging.warning(f"Row {row_number} has an empty DCI", extra={"row_number": row_number})
        molecules.append(molecule)

    dataset = ParsedDataset(
        classes=forests["classes"],
        systems=forests["systems"],
        side_effects=registry.values("side_effects"),
        indications=registry.values("indications"),
        interactions=registry.values("interactions"),
        molecules=molecules,
    )
    logging.info(
        f"Parsed {len(molecules)} molecules",
        extra={
            "molecules": len(molecules),
            "classes": len(dataset.classes),
            "systems": len(dataset.systems),
            "side_effects": len(dataset.side_effects),
            "indications": len(dataset.indications),
            "interactions": len(dataset.interactions),
        },
    )
    return dataset


def parse_molecules_csv(
    source: Source,
    *,
    delimiter: str = DEFAULT_DELIMITER,
    value_separator: str = DEFAULT_VALUE_SEPARATOR,
    encoding: str = DEFAULT_ENCODING,
    columns: Sequence[ColumnSpec] = DEFAULT_COLUMNS,
) -> ParsedDataset:
    """Parse a molecules export from a path or an open text/byte stream."""

    if isinstance(source, (str, Path)):
        logging.info("Reading molecules export", extra={"path": str(source)})
    frame = read_csv_frame(source, delimiter=delimiter, encoding=encoding)
    return parse_molecules_frame(frame, value_separator=value_separator, columns=columns)


async def parse_molecules_csv_async(
    path: Union[str, Path],
    *,
    delimiter: str = DEFAULT_DELIMITER,
    value_separator: str = DEFAULT_VALUE_SEPARATOR,
    encoding: str = DEFAULT_ENCODING,
    columns: Sequence[ColumnSpec] = DEFAULT_COLUMNS,
) -> ParsedDataset:
    """Read the whole file off the event loop, then parse it synchronously."""

    text = await asyncio.to_thread(Path(path).read_text, encoding=encoding)
    frame = read_csv_frame(io.StringIO(text), delimiter=delimiter, encoding=encoding)
    return parse_molecules_frame(frame, value_separator=value_separator, columns=columns)
