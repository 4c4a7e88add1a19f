"""
Data models for Inkwell.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from .errors import UnsupportedFileTypeError

Scalar = Union[str, int, float]


class FileKind(str, Enum):
    """Kinds of files the workspace can hold"""
    DOCUMENT = "document"         # Free text, markdown-ish
    SPREADSHEET = "spreadsheet"   # CSV-encoded table

    @property
    def extension(self) -> str:
        return ".md" if self is FileKind.DOCUMENT else ".csv"

    @property
    def mimetype(self) -> str:
        return "text/markdown" if self is FileKind.DOCUMENT else "text/csv"

    @classmethod
    def from_name(cls, name: str) -> Optional["FileKind"]:
        """Kind named by the file's extension, or None."""
        lowered = name.lower()
        for kind in cls:
            if lowered.endswith(kind.extension):
                return kind
        return None

    @classmethod
    def for_name(cls, name: str) -> "FileKind":
        kind = cls.from_name(name)
        if kind is None:
            raise UnsupportedFileTypeError(
                f"Unsupported file type: {name} (use .md or .csv)"
            )
        return kind


@dataclass
class WorkspaceFile:
    """A file in the workspace."""
    name: str
    kind: FileKind
    content: str = ""

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "content": self.content,
        }


@dataclass
class Table:
    """Ordered columns plus ordered rows keyed by column name."""
    columns: List[str] = field(default_factory=list)
    rows: List[Dict[str, Scalar]] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {"columns": list(self.columns), "rows": [dict(r) for r in self.rows]}


@dataclass
class ChatMessage:
    """One turn of the document chat."""
    role: str  # user, bot
    content: str

    def to_dict(self) -> Dict:
        return {"role": self.role, "content": self.content}


@dataclass
class ExportedFile:
    """A file ready to be downloaded."""
    filename: str
    content: str
    mimetype: str
