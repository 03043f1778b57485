from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence


class ColumnKind(Enum):
    HIERARCHICAL = 1
    UNIQUE = 2
    MULTI_VALUED = 3


@dataclass(frozen=True)
class ColumnSpec:
    """Declares how one source column of the molecules export is read.

    ``title_pattern`` must match the whole header cell. Hierarchical patterns
    capture the level number as their first group (``SYSTEME_2`` -> level 2).
    """

    title_pattern: str
    property: str
    kind: ColumnKind

    def is_unique(self) -> bool:
        return self.kind is ColumnKind.UNIQUE

    def is_hierarchical(self) -> bool:
        return self.kind is ColumnKind.HIERARCHICAL

    def is_multi_valued(self) -> bool:
        return self.kind is ColumnKind.MULTI_VALUED


DEFAULT_COLUMNS: Sequence[ColumnSpec] = (
    ColumnSpec(r"DCI", "dci", ColumnKind.UNIQUE),
    ColumnSpec(r"FORMULE_CHIMIQUE", "skeletal_formula", ColumnKind.UNIQUE),
    ColumnSpec(r"SYSTEME_(\d+)", "systems", ColumnKind.HIERARCHICAL),
    ColumnSpec(r"CLASSE_PHARMA_(\d+)", "classes", ColumnKind.HIERARCHICAL),
    ColumnSpec(r"MTE", "ntr", ColumnKind.UNIQUE),
    ColumnSpec(r"INTERACTION(?:_\d+)?", "interactions", ColumnKind.MULTI_VALUED),
    ColumnSpec(r"INDICATION(?:_\d+)?", "indications", ColumnKind.MULTI_VALUED),
    ColumnSpec(r"EFFET_INDESIRABLE(?:_\d+)?", "side_effects", ColumnKind.MULTI_VALUED),
    ColumnSpec(r"NIVEAU_DEBUTANT", "level_easy", ColumnKind.UNIQUE),
    ColumnSpec(r"NIVEAU_EXPERT", "level_hard", ColumnKind.UNIQUE),
)

REQUIRED_PROPERTIES: Sequence[str] = ("dci",)


def _full_match(spec: ColumnSpec, header: str) -> Optional[re.Match]:
    if header is None:
        return None
    return re.fullmatch(spec.title_pattern, str(header).strip(), flags=re.IGNORECASE)


def match_title(spec: ColumnSpec, header: str) -> bool:
    """True when ``header`` satisfies the whole pattern of ``spec``."""
    return _full_match(spec, header) is not None


def hierarchy_level(spec: ColumnSpec, header: str) -> int:
    """Return the level captured by a hierarchical column title."""

    if not spec.is_hierarchical():
        raise ValueError(f"Column spec for {spec.property!r} is not hierarchical")
    match = _full_match(spec, header)
    if match is None or not match.groups():
        raise ValueError(f"Header {header!r} does not carry a level for {spec.property!r}")
    return int(match.group(1))


def resolve_column(header: str, columns: Iterable[ColumnSpec] = DEFAULT_COLUMNS) -> Optional[ColumnSpec]:
    """First spec in declared order whose pattern matches ``header``, if any."""

    for spec in columns:
        if match_title(spec, header):
            return spec
    return None
