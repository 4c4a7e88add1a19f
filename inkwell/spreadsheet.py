"""
Spreadsheet editing.

The table functions are pure: they take a Table and return a new one.
SpreadsheetEditor binds them to one file of a FileStore, decoding the
stored CSV, applying the change and writing the re-encoded text back.
"""

import logging
from typing import Callable

from . import csv_codec
from .errors import (
    EmptyInputError,
    NameConflictError,
    NoColumnsError,
    UnknownColumnError,
    WrongFileKindError,
)
from .models import FileKind, Scalar, Table
from .store import FileStore

logger = logging.getLogger(__name__)


def _copy(table: Table) -> Table:
    return Table(columns=list(table.columns), rows=[dict(r) for r in table.rows])


def _column_name(name: str) -> str:
    # Headers lose their quotes when decoded
    return (name or "").replace('"', "").strip()


def set_cell(table: Table, row: int, column: str, value: Scalar) -> Table:
    """Set one cell. Out-of-range rows and unknown columns are ignored."""
    result = _copy(table)
    if not 0 <= row < len(result.rows) or column not in result.columns:
        logger.debug(f"Ignoring edit of cell ({row}, {column!r})")
        return result
    result.rows[row][column] = value
    return result


def rename_column(table: Table, old_name: str, new_name: str) -> Table:
    """Rename a column, keeping column order and every row's value."""
    new_name = _column_name(new_name)
    if not new_name:
        raise EmptyInputError("Column name is required")
    if new_name == old_name:
        return _copy(table)
    if old_name not in table.columns:
        raise UnknownColumnError(f"Column not found: {old_name}")
    if new_name in table.columns:
        raise NameConflictError(f"A column named {new_name} already exists")

    columns = [new_name if c == old_name else c for c in table.columns]
    rows = [
        {new: row.get(old, "") for old, new in zip(table.columns, columns)}
        for row in table.rows
    ]
    return Table(columns=columns, rows=rows)


def add_column(table: Table, name: str) -> Table:
    """Append an empty column."""
    name = _column_name(name)
    if not name:
        raise EmptyInputError("Column name is required")
    if name in table.columns:
        raise NameConflictError(f"A column named {name} already exists")

    result = _copy(table)
    result.columns.append(name)
    for row in result.rows:
        row[name] = ""
    return result


def add_row(table: Table) -> Table:
    """Append a row of empty values."""
    if not table.columns:
        raise NoColumnsError("Add a column before adding rows")
    result = _copy(table)
    result.rows.append({c: "" for c in result.columns})
    return result


def column_letter(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA"""
    letters = ""
    index += 1
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def default_range(table: Table) -> str:
    """A1-style range covering the header and every row."""
    if not table.columns:
        return "A1:A1"
    return f"A1:{column_letter(len(table.columns) - 1)}{len(table.rows) + 1}"


class SpreadsheetEditor:
    """Applies table edits to one spreadsheet file of a store."""

    def __init__(self, store: FileStore, name: str):
        f = store.get(name)
        if f.kind is not FileKind.SPREADSHEET:
            raise WrongFileKindError(f"{name} is not a spreadsheet")
        self.store = store
        self.name = name

    def table(self) -> Table:
        return csv_codec.decode(self.store.content(self.name))

    def _apply(self, change: Callable[[Table], Table]) -> Table:
        before = self.table()
        table = change(before)
        if table == before:
            return table
        if table.rows:
            content = csv_codec.encode(table)
        else:
            # Keep the header of a sheet that has columns but no rows yet
            content = csv_codec.encode_header(table)
        self.store.update_content(self.name, content)
        return table

    def set_cell(self, row: int, column: str, value: Scalar) -> Table:
        return self._apply(lambda t: set_cell(t, row, column, value))

    def rename_column(self, old_name: str, new_name: str) -> Table:
        return self._apply(lambda t: rename_column(t, old_name, new_name))

    def add_column(self, name: str) -> Table:
        return self._apply(lambda t: add_column(t, name))

    def add_row(self) -> Table:
        return self._apply(add_row)
