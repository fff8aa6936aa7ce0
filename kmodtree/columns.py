"""
Output column registry.

Describes the columns modtree can print and converts between column
names and ids, including parsing the comma separated ``--output`` list.
"""

import enum
from typing import NamedTuple, Sequence, Tuple

from .errors import ColumnSpecError, UnknownColumnError


class ColumnFlag(enum.IntFlag):
    """Rendering flags attached to a column."""

    NONE = 0
    TRUNC = 1 << 0        # content may be cut to fit the terminal
    TREE = 1 << 1         # column carries the branch-drawing prefix
    NOEXTREMES = 1 << 2   # never shrunk, not even for extreme cells


class ColumnId(enum.IntEnum):
    NAME = 0
    PATH = 1


class ColumnInfo(NamedTuple):
    """Static description of an output column."""

    id: ColumnId
    name: str
    width_hint: float
    flags: ColumnFlag
    help: str


COLUMNS: Tuple[ColumnInfo, ...] = (
    ColumnInfo(ColumnId.NAME, "NAME", 0.30, ColumnFlag.TREE | ColumnFlag.NOEXTREMES, "module name"),
    ColumnInfo(ColumnId.PATH, "PATH", 0.40, ColumnFlag.TRUNC, "module path"),
)


def name_to_id(name: str, columns: Sequence[ColumnInfo] = COLUMNS) -> ColumnId:
    """
    Resolve a column name to its id.

    Args:
        name: Column name, matched case-insensitively
        columns: Column registry to search

    Returns:
        ColumnId: Id of the matching column

    Raises:
        UnknownColumnError: If no registered column has this name
    """
    for info in columns:
        if info.name.lower() == name.lower():
            return info.id
    raise UnknownColumnError(name)


def id_to_name(column_id: ColumnId, columns: Sequence[ColumnInfo] = COLUMNS) -> str:
    """Return the display name of a column id."""
    return get_column_info(column_id, columns).name


def get_column_info(column_id: ColumnId, columns: Sequence[ColumnInfo] = COLUMNS) -> ColumnInfo:
    for info in columns:
        if info.id == column_id:
            return info
    raise KeyError(column_id)


def default_columns(columns: Sequence[ColumnInfo] = COLUMNS) -> Tuple[ColumnId, ...]:
    """Return every registered column id in declaration order."""
    return tuple(info.id for info in columns)


def parse_column_list(spec: str, columns: Sequence[ColumnInfo] = COLUMNS) -> Tuple[ColumnId, ...]:
    """
    Parse a comma separated list of column names.

    Duplicates are allowed, but the list may not hold more entries than
    there are registered columns.

    Args:
        spec: Column list such as ``"name,path"``
        columns: Column registry to resolve names against

    Returns:
        Tuple[ColumnId, ...]: Column ids in the order given

    Raises:
        ColumnSpecError: If the list is empty, contains an empty entry,
            names an unknown column or has too many entries
    """
    if not spec:
        raise ColumnSpecError("empty column list")

    tokens = spec.split(",")
    if len(tokens) > len(columns):
        raise ColumnSpecError(
            f"too many columns: {len(tokens)} given, at most {len(columns)} allowed")

    ids = []
    for token in tokens:
        if not token:
            raise ColumnSpecError(f"empty column name in list: {spec!r}")
        ids.append(name_to_id(token, columns))
    return tuple(ids)


def disable_truncation(columns: Sequence[ColumnInfo] = COLUMNS) -> Tuple[ColumnInfo, ...]:
    """Return a copy of the registry with the TRUNC flag cleared everywhere."""
    return tuple(info._replace(flags=info.flags & ~ColumnFlag.TRUNC) for info in columns)


def column_help(columns: Sequence[ColumnInfo] = COLUMNS) -> str:
    """Format the list of available columns for the help text."""
    lines = ["Available columns:"]
    for info in columns:
        lines.append(f" {info.name:>11}  {info.help}")
    return "\n".join(lines)
