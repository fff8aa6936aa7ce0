"""
Table and tree output formatting.

This module contains the TreeTable class which lays out parent-linked
rows as an aligned tree, a flat list or raw machine readable lines.
"""

import unicodedata
from typing import Dict, List, NamedTuple, Optional, Sequence

from .columns import ColumnFlag
from .errors import TableFrozenError


class TreeSymbols(NamedTuple):
    """Glyphs used to draw tree branches."""

    branch: str
    vertical: str
    right: str


ASCII_SYMBOLS = TreeSymbols(branch="|-", vertical="| ", right="`-")
UTF8_SYMBOLS = TreeSymbols(branch="├─", vertical="│ ", right="└─")


class OutputOptions(NamedTuple):
    """
    Render settings for a table.

    ``width`` is the terminal width budget; ``None`` means output is not
    going to a terminal and columns are never shrunk.
    """

    tree: bool = True
    ascii: bool = False
    raw: bool = False
    noheadings: bool = False
    width: Optional[int] = None


def char_width(ch: str) -> int:
    """Return the number of terminal cells used by one character."""
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in ("W", "F"):
        return 2
    return 1


def display_width(text: str) -> int:
    """Return the number of terminal cells used by ``text``."""
    return sum(char_width(ch) for ch in text)


def clip_text(text: str, width: int) -> str:
    """Cut ``text`` to at most ``width`` terminal cells."""
    used = 0
    for pos, ch in enumerate(text):
        used += char_width(ch)
        if used > width:
            return text[:pos]
    return text


def escape_raw(text: str) -> str:
    """Hex-escape blanks and unprintable characters for raw output."""
    out = []
    for ch in text:
        if ch == "\\" or ch.isspace() or not ch.isprintable():
            out.extend(f"\\x{byte:02x}" for byte in ch.encode("utf-8"))
        else:
            out.append(ch)
    return "".join(out)


class TableColumn:
    """A column defined on a TreeTable."""

    def __init__(self, name: str, width_hint: float, flags: ColumnFlag):
        self.name = name
        self.width_hint = width_hint
        self.flags = flags

    def __repr__(self) -> str:
        return f"TableColumn(name='{self.name}', width_hint={self.width_hint}, flags={self.flags!r})"


class TableRow:
    """
    One row of a TreeTable.

    Rows live in the table's arena; ``parent`` is the arena index of the
    parent row or ``None`` for a root.
    """

    __slots__ = ("index", "parent", "cells")

    def __init__(self, index: int, parent: Optional[int], ncolumns: int):
        self.index = index
        self.parent = parent
        self.cells: List[Optional[str]] = [None] * ncolumns

    def __repr__(self) -> str:
        return f"TableRow(index={self.index}, parent={self.parent}, cells={self.cells!r})"


class TreeTable:
    """Collects rows and renders them as a tree, list or raw table."""

    def __init__(self, options: Optional[OutputOptions] = None):
        self.options = options or OutputOptions()
        self.symbols = ASCII_SYMBOLS if self.options.ascii else UTF8_SYMBOLS
        self.columns: List[TableColumn] = []
        self._rows: List[TableRow] = []
        self._frozen = False

    @property
    def is_tree(self) -> bool:
        return self.options.tree and not self.options.raw

    @property
    def rows(self) -> Sequence[TableRow]:
        return tuple(self._rows)

    def _check_mutable(self) -> None:
        if self._frozen:
            raise TableFrozenError("table has already been rendered")

    def define_column(self, name: str, width_hint: float,
                      flags: ColumnFlag = ColumnFlag.NONE) -> int:
        """
        Add an output column.

        Args:
            name: Column heading
            width_hint: Relative width weight in (0, 1]
            flags: ColumnFlag set; TREE is dropped outside tree mode

        Returns:
            int: Index of the new column
        """
        self._check_mutable()
        if not 0 < width_hint <= 1:
            raise ValueError(f"width hint out of range for column {name}: {width_hint}")
        if self._rows:
            raise ValueError("columns must be defined before rows are added")
        if not self.is_tree:
            flags &= ~ColumnFlag.TREE
        self.columns.append(TableColumn(name, width_hint, ColumnFlag(flags)))
        return len(self.columns) - 1

    def add_row(self, parent: Optional[TableRow] = None) -> TableRow:
        """Append a row, optionally as the last child of ``parent``."""
        self._check_mutable()
        if not self.columns:
            raise ValueError("no columns defined")
        if parent is not None:
            if parent.index >= len(self._rows) or self._rows[parent.index] is not parent:
                raise ValueError("parent row does not belong to this table")
            parent_index = parent.index
        else:
            parent_index = None
        row = TableRow(len(self._rows), parent_index, len(self.columns))
        self._rows.append(row)
        return row

    def set_cell(self, row: TableRow, column_index: int, value: Optional[str]) -> None:
        self._check_mutable()
        row.cells[column_index] = value

    def children(self, row: TableRow) -> List[TableRow]:
        return [r for r in self._rows if r.parent == row.index]

    def depth(self, row: TableRow) -> int:
        depth = 0
        while row.parent is not None:
            row = self._rows[row.parent]
            depth += 1
        return depth

    def _children_map(self) -> Dict[Optional[int], List[int]]:
        children: Dict[Optional[int], List[int]] = {}
        for row in self._rows:
            children.setdefault(row.parent, []).append(row.index)
        return children

    def iter_rows(self) -> List[TableRow]:
        """Return all rows in depth-first pre-order."""
        children = self._children_map()
        ordered = []
        stack = list(reversed(children.get(None, [])))
        while stack:
            index = stack.pop()
            ordered.append(self._rows[index])
            stack.extend(reversed(children.get(index, [])))
        return ordered

    def _tree_prefix(self, row: TableRow, last_child: Dict[int, bool]) -> str:
        if row.parent is None:
            return ""
        parts = [self.symbols.right if last_child[row.index] else self.symbols.branch]
        ancestor = self._rows[row.parent]
        while ancestor.parent is not None:
            parts.append("  " if last_child[ancestor.index] else self.symbols.vertical)
            ancestor = self._rows[ancestor.parent]
        return "".join(reversed(parts))

    def _row_texts(self, ordered: List[TableRow]) -> List[List[str]]:
        tree_column = None
        if self.is_tree:
            for index, column in enumerate(self.columns):
                if column.flags & ColumnFlag.TREE:
                    tree_column = index
                    break

        last_child: Dict[int, bool] = {}
        for siblings in self._children_map().values():
            for index in siblings:
                last_child[index] = index == siblings[-1]

        texts = []
        for row in ordered:
            cells = [value if value is not None else "" for value in row.cells]
            if tree_column is not None:
                cells[tree_column] = self._tree_prefix(row, last_child) + cells[tree_column]
            texts.append(cells)
        return texts

    def _compute_widths(self, header: Optional[List[str]], texts: List[List[str]]) -> List[int]:
        """
        Compute column widths within the terminal width budget.

        Each column starts at its natural width. If that overflows the
        terminal, extreme cells of truncatable columns are ignored and
        whatever room that frees beyond the terminal width is handed back
        to those columns. Truncatable columns are then shrunk, widest
        first, towards their share of the terminal and finally down to a
        single character. Columns that cannot be truncated always keep
        their natural width.
        """
        natural = []
        header_widths = []
        for index in range(len(self.columns)):
            head = display_width(header[index]) if header else 0
            header_widths.append(head)
            natural.append(max([head] + [display_width(cells[index]) for cells in texts]))
        widths = list(natural)

        termwidth = self.options.width
        total = sum(widths) + len(widths) - 1
        if termwidth is None or total <= termwidth:
            return widths

        reduced_columns = []
        for index, column in enumerate(self.columns):
            if not texts or not column.flags & ColumnFlag.TRUNC:
                continue
            if column.flags & ColumnFlag.NOEXTREMES:
                continue
            cell_widths = [display_width(cells[index]) for cells in texts]
            average = sum(cell_widths) / len(cell_widths)
            regular = [w for w in cell_widths if w <= average * 2]
            reduced = max([header_widths[index]] + regular)
            if reduced < widths[index]:
                total -= widths[index] - reduced
                widths[index] = reduced
                reduced_columns.append(index)

        for index in reduced_columns:
            if total >= termwidth:
                break
            extra = min(termwidth - total, natural[index] - widths[index])
            widths[index] += extra
            total += extra

        def shrinkable(index: int, respect_hint: bool) -> bool:
            column = self.columns[index]
            if not column.flags & ColumnFlag.TRUNC:
                return False
            if column.flags & (ColumnFlag.NOEXTREMES | ColumnFlag.TREE):
                return False
            if widths[index] <= 1:
                return False
            return not respect_hint or widths[index] > column.width_hint * termwidth

        for respect_hint in (True, False):
            while total > termwidth:
                candidates = [i for i in range(len(widths)) if shrinkable(i, respect_hint)]
                if not candidates:
                    break
                widest = max(candidates, key=lambda i: widths[i])
                widths[widest] -= 1
                total -= 1
        return widths

    def _format_line(self, cells: List[str], widths: List[int]) -> str:
        parts = []
        last = len(cells) - 1
        for index, text in enumerate(cells):
            width = widths[index]
            if self.columns[index].flags & ColumnFlag.TRUNC and display_width(text) > width:
                text = clip_text(text, width)
            if index != last:
                text += " " * max(0, width - display_width(text))
            parts.append(text)
        return " ".join(parts).rstrip()

    def render(self) -> str:
        """
        Render the table.

        After the first call the table is frozen; rendering it again
        returns the same text.

        Returns:
            str: Rendered lines, each terminated by a newline
        """
        self._frozen = True
        ordered = self.iter_rows()
        texts = self._row_texts(ordered)

        if self.options.raw:
            return "".join(" ".join(escape_raw(cell) for cell in cells) + "\n" for cells in texts)

        header = None
        if not self.options.noheadings and texts:
            header = [column.name.upper() for column in self.columns]
        widths = self._compute_widths(header, texts)

        lines = []
        if header:
            lines.append(self._format_line(header, widths))
        lines.extend(self._format_line(cells, widths) for cells in texts)
        return "".join(line + "\n" for line in lines)
