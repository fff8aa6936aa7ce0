"""
Exceptions and diagnostics for modtree.

Every failure the tool can recover from is reported through ``warn`` on
stderr; the exception classes below mark where a failure stops.
"""

import sys

PROGRAM_NAME = "modtree"


class ModtreeError(Exception):
    """Base class for all modtree errors."""


class ColumnSpecError(ModtreeError):
    """Raised when an output column list cannot be parsed."""


class UnknownColumnError(ColumnSpecError):
    """Raised when a column name is not registered."""

    def __init__(self, name: str):
        super().__init__(f"unknown column: {name}")
        self.name = name


class TableFrozenError(ModtreeError):
    """Raised when a table is modified after it has been rendered."""


class ModuleDatabaseError(ModtreeError):
    """Raised when the module directory cannot be opened or read."""


class ModuleLookupError(ModtreeError):
    """Raised when an alias or file cannot be resolved to a module."""


class ModuleInfoError(ModtreeError):
    """Raised when the info map of a module cannot be read."""


def warn(message: str) -> None:
    """Print a diagnostic prefixed with the program name to stderr."""
    print(f"{PROGRAM_NAME}: {message}", file=sys.stderr)
