"""
CSV encoding and decoding for spreadsheet files.

decode() runs a small state machine over the text:

    FIELD_START -> UNQUOTED   on any other character
    FIELD_START -> QUOTED     on '"' (leading blanks dropped)
    QUOTED      -> QUOTE_SEEN on '"'
    QUOTE_SEEN  -> QUOTED     on '"' (escaped quote)
    QUOTE_SEEN  -> UNQUOTED   on anything but ',' or a line break

Line breaks end a record only outside quotes. Parsing is lenient: short
rows are padded with "" and extra fields are dropped.
"""

import math
import re
from enum import Enum
from typing import List, Tuple

from .models import Scalar, Table

NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
INTEGER_RE = re.compile(r"[+-]?\d+")

# (text, quoted)
Field = Tuple[str, bool]


class _State(Enum):
    FIELD_START = 1
    UNQUOTED = 2
    QUOTED = 3
    QUOTE_SEEN = 4


def tokenize(text: str) -> List[List[Field]]:
    """Split CSV text into records of (value, was_quoted) fields."""
    records: List[List[Field]] = []
    record: List[Field] = []
    buf: List[str] = []
    quoted = False
    state = _State.FIELD_START

    def end_field():
        nonlocal buf, quoted
        value = "".join(buf)
        record.append((value if quoted else value.strip(), quoted))
        buf = []
        quoted = False

    def end_record():
        nonlocal record
        end_field()
        records.append(record)
        record = []

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]

        if state is _State.QUOTED:
            if ch == '"':
                state = _State.QUOTE_SEEN
            else:
                buf.append(ch)
            i += 1
            continue

        if state is _State.QUOTE_SEEN and ch == '"':
            buf.append('"')
            state = _State.QUOTED
            i += 1
            continue

        if ch == ",":
            end_field()
            state = _State.FIELD_START
        elif ch in "\r\n":
            end_record()
            state = _State.FIELD_START
            if ch == "\r" and i + 1 < n and text[i + 1] == "\n":
                i += 1
        elif state is _State.FIELD_START:
            if ch == '"' and not "".join(buf).strip():
                buf = []
                quoted = True
                state = _State.QUOTED
            elif ch in " \t":
                buf.append(ch)
            else:
                buf.append(ch)
                state = _State.UNQUOTED
        elif state is _State.QUOTE_SEEN:
            # Text after a closing quote; keep anything but padding.
            if ch not in " \t":
                buf.append(ch)
                state = _State.UNQUOTED
        else:
            buf.append(ch)
        i += 1

    if state is not _State.FIELD_START or buf or record:
        end_record()

    return records


def _is_blank(record: List[Field]) -> bool:
    return len(record) == 1 and not record[0][1] and record[0][0] == ""


def coerce(value: str) -> Scalar:
    """Turn a finite numeric literal into int/float, leave the rest as text."""
    if not value or not NUMBER_RE.fullmatch(value):
        return value
    try:
        if INTEGER_RE.fullmatch(value):
            return int(value)
        number = float(value)
    except ValueError:
        # Over the interpreter's digit limit for int()
        return value
    if not math.isfinite(number):
        return value
    return number


def decode(text: str) -> Table:
    """Parse CSV text into a Table."""
    records = [r for r in tokenize(text or "") if not _is_blank(r)]
    if not records:
        return Table()

    columns: List[str] = []
    positions: List[int] = []
    for index, (name, _) in enumerate(records[0]):
        name = name.replace('"', "").strip()
        if name in columns:
            continue
        columns.append(name)
        positions.append(index)

    rows = []
    for record in records[1:]:
        row = {}
        for column, index in zip(columns, positions):
            row[column] = coerce(record[index][0]) if index < len(record) else ""
        rows.append(row)

    return Table(columns=columns, rows=rows)


def _needs_quotes(value: str) -> bool:
    if any(c in value for c in ',"\r\n'):
        return True
    return value != value.strip()


def format_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, int):
        return str(value)
    text = str(value)
    if _needs_quotes(text):
        return '"' + text.replace('"', '""') + '"'
    return text


def encode(table: Table) -> str:
    """Serialize a Table to CSV text. A table with no rows encodes to ""."""
    if not table.rows or not table.columns:
        return ""
    lines = [encode_header(table)]
    for row in table.rows:
        line = ",".join(format_value(row.get(c, "")) for c in table.columns)
        # An empty line would be read back as a blank line and dropped
        lines.append(line or '""')
    return "\n".join(lines)


def encode_header(table: Table) -> str:
    """Just the header line, for sheets that have columns but no rows yet."""
    return ",".join(format_value(c) for c in table.columns)
