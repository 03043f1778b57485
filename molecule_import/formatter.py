from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import FormatError
from .properties import PROPERTY_DOCUMENT_KEYS, PROPERTY_IDS

MAX_LENGTHS: Mapping[str, int] = {
    "dci": 128,
    "property_value": 128,
    "classification_value": 128,
    "skeletal_formula": 64,
}


class Difficulty(str, Enum):
    EASY = "EASY"
    HARD = "HARD"


@dataclass
class RawMolecule:
    """One data row of the export, as produced by the parser (nothing truncated or coerced)."""

    id: Any
    dci: str = ""
    skeletal_formula: str = ""
    ntr: Any = None
    level_easy: bool = False
    level_hard: bool = False
    system: Optional[int] = None
    class_: Optional[int] = None
    properties: Dict[str, List[int]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dci": self.dci,
            "skeletalFormula": self.skeletal_formula,
            "ntr": self.ntr,
            "levelEasy": self.level_easy,
            "levelHard": self.level_hard,
            "system": self.system,
            "class": self.class_,
            **{PROPERTY_DOCUMENT_KEYS.get(name, name): list(ids) for name, ids in self.properties.items()},
        }


@dataclass(frozen=True)
class Molecule:
    id: int
    dci: str
    skeletal_formula: str
    ntr: int
    difficulty: Difficulty
    system: Optional[int]
    class_: Optional[int]
    properties: Mapping[str, Tuple[int, ...]]


def truncate(value: Any, limit_key: str) -> str:
    """Stringify ``value`` and cut it to the column width named by ``limit_key``."""
    if value is None:
        return ""
    return str(value)[: MAX_LENGTHS[limit_key]]


def _coerce_id(raw: RawMolecule) -> int:
    value = raw.id
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        raise FormatError(f"Molecule {raw.dci!r} has no id")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise FormatError(f"Molecule {raw.dci!r} has a non-numeric id: {value!r}") from None
    if not number.is_integer():
        raise FormatError(f"Molecule {raw.dci!r} has a non-integer id: {value!r}")
    return int(number)


def _coerce_ntr(raw: RawMolecule, molecule_id: int) -> int:
    value = raw.ntr
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        logging.warning(
            f"Molecule {molecule_id} has an unreadable MTE value {value!r}, defaulting to 0",
            extra={"molecule_id": molecule_id, "dci": raw.dci, "ntr": value},
        )
        return 0


def format_molecule(raw: RawMolecule) -> Molecule:
    """Turn a parsed row into the record written to the ``molecule`` table.

    The input row is left untouched. Raises ``FormatError`` when the id is
    missing or not numeric since it is the primary key.
    """

    molecule_id = _coerce_id(raw)
    dci = truncate(raw.dci, "dci")
    skeletal_formula = truncate(raw.skeletal_formula, "skeletal_formula") if raw.skeletal_formula else ""

    if raw.dci is not None and len(str(raw.dci)) > len(dci):
        logging.debug("DCI truncated", extra={"molecule_id": molecule_id, "dci": dci})
    if raw.skeletal_formula and len(str(raw.skeletal_formula)) > len(skeletal_formula):
        logging.debug("Skeletal formula truncated", extra={"molecule_id": molecule_id, "dci": dci})

    properties = {name: tuple(raw.properties.get(name, ())) for name in PROPERTY_IDS}

    return Molecule(
        id=molecule_id,
        dci=dci,
        skeletal_formula=skeletal_formula,
        ntr=_coerce_ntr(raw, molecule_id),
        difficulty=Difficulty.HARD if raw.level_hard else Difficulty.EASY,
        system=raw.system,
        class_=raw.class_,
        properties=properties,
    )
