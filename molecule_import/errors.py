"""Exception types raised by the molecule import pipeline."""

from __future__ import annotations

from typing import Any


class MoleculeImportError(Exception):
    """Base class for every failure that aborts an import."""


class ColumnContractError(MoleculeImportError, ValueError):
    """The CSV header does not respect the fixed column contract."""


class MalformedRowError(MoleculeImportError, ValueError):
    def __init__(self, row_number: int, column: str, value: Any, reason: str = "not numeric") -> None:
        self.row_number = row_number
        self.column = column
        self.value = value
        super().__init__(f"Row {row_number}: column {column} value {value!r} is {reason}")


class FormatError(MoleculeImportError, ValueError):
    """A parsed row cannot be turned into a persistable molecule."""


class UnknownPropertyError(MoleculeImportError, KeyError):
    def __init__(self, property_name: str) -> None:
        self.property_name = property_name
        super().__init__(property_name)

    def __str__(self) -> str:
        return f"No property id registered for {self.property_name!r}"


class ImportExecutionError(MoleculeImportError, RuntimeError):
    """The generated script failed while being executed against the database."""
