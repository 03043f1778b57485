from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence

from .errors import UnknownPropertyError

# Persisted pr_id of each multi-valued property.
PROPERTY_IDS: Mapping[str, int] = {
    "side_effects": 1,
    "interactions": 2,
    "indications": 3,
}

# Order in which property tables are written to the import script.
PROPERTY_INSERT_ORDER: Sequence[str] = ("side_effects", "indications", "interactions")

# Keys of each property in the parsed JSON document.
PROPERTY_DOCUMENT_KEYS: Mapping[str, str] = {
    "side_effects": "sideEffects",
    "interactions": "interactions",
    "indications": "indications",
}


@dataclass(frozen=True)
class PropertyValue:
    id: int
    name: str


def property_id(property_name: str) -> int:
    try:
        return PROPERTY_IDS[property_name]
    except KeyError:
        raise UnknownPropertyError(property_name) from None


def compose_value_id(prop_id: int, local_id: int) -> int:
    """Global ``pv_id`` of a value: the decimal concatenation of property id and local id.

    Property ids are single digits and local ids start at 1, so the leading
    digit always identifies the property and no two pairs collide.
    """

    if not 1 <= prop_id <= 9:
        raise ValueError(f"Property id must be a single non-zero digit, got {prop_id}")
    if local_id < 1:
        raise ValueError(f"Local value id must be positive, got {local_id}")
    return int(f"{prop_id}{local_id}")


class PropertyValueRegistry:
    """Assigns per-property sequence numbers to distinct values, in first-seen order."""

    def __init__(self, property_names: Sequence[str] = tuple(PROPERTY_IDS)) -> None:
        for name in property_names:
            property_id(name)
        self._ids: Dict[str, Dict[str, int]] = {name: {} for name in property_names}
        self._values: Dict[str, List[PropertyValue]] = {name: [] for name in property_names}

    def _table(self, property_name: str) -> Dict[str, int]:
        try:
            return self._ids[property_name]
        except KeyError:
            raise UnknownPropertyError(property_name) from None

    def resolve_value_id(self, property_name: str, raw_value: str) -> int:
        ids = self._table(property_name)
        local_id = ids.get(raw_value)
        if local_id is None:
            local_id = len(ids) + 1
            ids[raw_value] = local_id
            self._values[property_name].append(PropertyValue(id=local_id, name=raw_value))
        return local_id

    def global_id(self, property_name: str, local_id: int) -> int:
        return compose_value_id(property_id(property_name), local_id)

    def values(self, property_name: str) -> List[PropertyValue]:
        self._table(property_name)
        return list(self._values[property_name])
