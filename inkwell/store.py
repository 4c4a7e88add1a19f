"""
File storage for the workspace.

FileStore holds the working set of files in memory. SqliteBlobStore
persists the whole set as one JSON blob, written on explicit save and
read back on startup.
"""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .config import DB_PATH
from .errors import (
    EmptyInputError,
    NameConflictError,
    UnknownFileError,
    UnsupportedFileTypeError,
)
from .models import FileKind, WorkspaceFile

logger = logging.getLogger(__name__)


DEFAULT_FILES: Dict[str, str] = {
    "document-1.md": (
        "Welcome to your Personal AI Workspace. This is a text document editor. "
        "You can write notes, draft articles, or brainstorm ideas here. "
        "Use the AI tools below to enhance your writing."
    ),
    "spreadsheet-1.csv": (
        "id,Product,Quantity,Price\n"
        '1,"Laptop",12,1200\n'
        '2,"Mouse",75,25\n'
        '3,"Keyboard",30,75\n'
        '4,"Monitor",20,300\n'
        '5,"Webcam",50,50'
    ),
}


class FileStore:
    """In-memory working set of workspace files."""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self._files: Dict[str, WorkspaceFile] = {}
        self._selected: Optional[str] = None
        self._saved: Dict[str, str] = {}
        self._listeners: List[Callable[[str, Optional[str]], None]] = []
        self.replace_all(files or {})

    def on_change(self, listener: Callable[[str, Optional[str]], None]):
        """
        Register a callback for renames and deletes.

        Called as listener(old_name, new_name) after a rename and
        listener(name, None) after a delete.
        """
        self._listeners.append(listener)

    def _notify(self, old_name: str, new_name: Optional[str]):
        for listener in self._listeners:
            listener(old_name, new_name)

    # Queries
    def names(self) -> List[str]:
        return list(self._files)

    def __contains__(self, name: str) -> bool:
        return name in self._files

    def __len__(self) -> int:
        return len(self._files)

    def get(self, name: str) -> WorkspaceFile:
        """Get a copy of a file by name."""
        f = self._require(name)
        return WorkspaceFile(name=f.name, kind=f.kind, content=f.content)

    def content(self, name: str) -> str:
        return self._require(name).content

    @property
    def selected(self) -> Optional[str]:
        return self._selected

    def active(self) -> Optional[WorkspaceFile]:
        """The selected file, if any."""
        if self._selected is None:
            return None
        return self.get(self._selected)

    def to_mapping(self) -> Dict[str, str]:
        """Name -> raw content, in store order."""
        return {name: f.content for name, f in self._files.items()}

    @property
    def dirty(self) -> bool:
        """True when the working set differs from the last load or save."""
        return self.to_mapping() != self._saved

    # Lifecycle
    def create(self, name: str, kind: Optional[FileKind] = None, content: str = "") -> WorkspaceFile:
        """
        Create a new file.

        The kind comes from the extension; a bare name gets the extension of
        the requested kind appended.
        """
        name = self._resolve_name(name, kind)
        if name in self._files:
            raise NameConflictError(f"A file named {name} already exists")

        resolved = FileKind.for_name(name)
        if kind is not None and resolved is not kind:
            raise UnsupportedFileTypeError(f"{name} is not a {kind.value} file name")

        f = WorkspaceFile(name=name, kind=resolved, content=content)
        self._files[name] = f
        logger.info(f"Created {f.kind.value} {name}")
        return self.get(name)

    def rename(self, old_name: str, new_name: str) -> WorkspaceFile:
        """Rename a file. The file keeps its kind."""
        f = self._require(old_name)
        new_name = self._resolve_name(new_name, f.kind)
        if new_name == old_name:
            return self.get(old_name)
        if new_name in self._files:
            raise NameConflictError(f"A file named {new_name} already exists")
        if FileKind.for_name(new_name) is not f.kind:
            raise UnsupportedFileTypeError(
                f"Cannot rename {f.kind.value} {old_name} to {new_name}"
            )

        # Rebuild to keep the file in its original position
        self._files = {
            (new_name if name == old_name else name): existing
            for name, existing in self._files.items()
        }
        f.name = new_name
        if self._selected == old_name:
            self._selected = new_name
        logger.info(f"Renamed {old_name} -> {new_name}")
        self._notify(old_name, new_name)
        return self.get(new_name)

    def delete(self, name: str):
        """Delete a file. Selection falls back to the first remaining file."""
        self._require(name)
        del self._files[name]
        if self._selected == name:
            self._selected = next(iter(self._files), None)
        logger.info(f"Deleted {name}")
        self._notify(name, None)

    def select(self, name: str) -> WorkspaceFile:
        self._require(name)
        self._selected = name
        return self.get(name)

    def update_content(self, name: str, content: str):
        self._require(name).content = content

    def replace_all(self, files: Dict[str, str]):
        """Swap in a whole new working set, e.g. after loading."""
        loaded: Dict[str, WorkspaceFile] = {}
        for name, content in files.items():
            kind = FileKind.from_name(name)
            if kind is None:
                logger.warning(f"Skipping file with unknown type: {name}")
                continue
            loaded[name] = WorkspaceFile(name=name, kind=kind, content=content or "")

        self._files = loaded
        if self._selected not in self._files:
            self._selected = next(iter(self._files), None)
        self.mark_saved()

    def mark_saved(self):
        self._saved = self.to_mapping()

    # Helpers
    def _require(self, name: str) -> WorkspaceFile:
        f = self._files.get(name)
        if f is None:
            raise UnknownFileError(f"File not found: {name}")
        return f

    @staticmethod
    def _resolve_name(name: str, kind: Optional[FileKind]) -> str:
        name = (name or "").strip()
        if not name:
            raise EmptyInputError("File name is required")
        if FileKind.from_name(name) is None and kind is not None:
            name += kind.extension
        return name


class BlobStore(ABC):
    """Key-value persistence for the serialized file set."""

    @abstractmethod
    def load(self) -> Optional[Dict[str, str]]:
        """Return the saved mapping, or None if nothing usable is stored."""

    @abstractmethod
    def save(self, files: Dict[str, str]):
        pass


SCHEMA = """
CREATE TABLE IF NOT EXISTS blobs (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteBlobStore(BlobStore):
    """SQLite-backed blob storage."""

    FILES_KEY = "files"

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def load(self) -> Optional[Dict[str, str]]:
        with self._get_conn() as conn:
            row = conn.execute(
                "SELECT value FROM blobs WHERE key = ?", (self.FILES_KEY,)
            ).fetchone()

        if not row:
            return None

        try:
            data = json.loads(row["value"])
        except json.JSONDecodeError as e:
            logger.warning(f"Stored files are unreadable, ignoring them: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning("Stored files are not a mapping, ignoring them")
            return None

        return {str(k): str(v) for k, v in data.items()}

    def save(self, files: Dict[str, str]):
        with self._get_conn() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO blobs (key, value, updated_at)
                   VALUES (?, ?, ?)""",
                (self.FILES_KEY, json.dumps(files), datetime.utcnow().isoformat())
            )
            conn.commit()

    def clear(self):
        with self._get_conn() as conn:
            conn.execute("DELETE FROM blobs WHERE key = ?", (self.FILES_KEY,))
            conn.commit()
