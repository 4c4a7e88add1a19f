"""
The workspace controller.

Owns the file store, its persistence and the AI flow client, and applies
AI results to files. An AI result is written only after the flow
succeeds, so a failed call never leaves a file half-changed.
"""

import logging
from typing import Dict, List, Optional

from . import csv_codec
from .errors import EmptyInputError, FlowError, WrongFileKindError
from .flows import FlowClient, FlowKind
from .models import ChatMessage, ExportedFile, FileKind, Table, WorkspaceFile
from .spreadsheet import SpreadsheetEditor, default_range
from .store import DEFAULT_FILES, BlobStore, FileStore

logger = logging.getLogger(__name__)

CHAT_ERROR_REPLY = "Sorry, I encountered an error."


class ChatSession:
    """Conversation about one document, plus the pending rewrite."""

    def __init__(self):
        self.messages: List[ChatMessage] = []
        self.suggestion: Optional[str] = None
        self.document_name: Optional[str] = None

    def history_text(self) -> str:
        return "\n".join(f"{m.role}: {m.content}" for m in self.messages)

    def reset(self):
        self.messages = []
        self.suggestion = None
        self.document_name = None

    def to_dict(self) -> Dict:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "suggestion": self.suggestion,
            "document": self.document_name,
        }


class Workspace:
    """Single-user workspace: files, persistence and AI actions"""

    def __init__(
        self,
        blobs: BlobStore,
        flows: Optional[FlowClient] = None,
        files: Optional[FileStore] = None,
    ):
        self.blobs = blobs
        self.flows = flows or FlowClient()
        self.files = files or FileStore()
        self.chat = ChatSession()
        self.files.on_change(self._file_moved)

    def _file_moved(self, old_name: str, new_name: Optional[str]):
        # The chat follows its document; a deleted document ends the chat
        if self.chat.document_name != old_name:
            return
        if new_name is None:
            self.chat.reset()
        else:
            self.chat.document_name = new_name

    # ============== Persistence ==============

    def load(self):
        """Read the saved file set, falling back to the built-in files."""
        saved = self.blobs.load()
        if not saved:
            logger.info("No saved files, starting from defaults")
            saved = dict(DEFAULT_FILES)
        self.files.replace_all(saved)
        self.chat.reset()
        logger.info(f"Loaded {len(self.files)} files")

    def save(self):
        self.blobs.save(self.files.to_mapping())
        self.files.mark_saved()
        logger.info(f"Saved {len(self.files)} files")

    def reset(self):
        """Replace everything with the built-in files and save."""
        self.files.replace_all(dict(DEFAULT_FILES))
        self.chat.reset()
        self.save()

    def export(self, name: Optional[str] = None) -> ExportedFile:
        f = self._file(name)
        if not f.content:
            raise EmptyInputError(f"{f.name} is empty, nothing to export")
        return ExportedFile(filename=f.name, content=f.content, mimetype=f.kind.mimetype)

    # ============== Lookups ==============

    def _file(self, name: Optional[str] = None, kind: Optional[FileKind] = None) -> WorkspaceFile:
        name = name or self.files.selected
        if not name:
            raise EmptyInputError("No file selected")
        f = self.files.get(name)
        if kind is not None and f.kind is not kind:
            raise WrongFileKindError(f"{f.name} is not a {kind.value}")
        return f

    def sheet(self, name: Optional[str] = None) -> SpreadsheetEditor:
        return SpreadsheetEditor(self.files, self._file(name, FileKind.SPREADSHEET).name)

    def table(self, name: Optional[str] = None) -> Table:
        return self.sheet(name).table()

    # ============== Document AI ==============

    def correct_grammar(self, name: Optional[str] = None) -> str:
        doc = self._file(name, FileKind.DOCUMENT)
        if not doc.content.strip():
            raise EmptyInputError("The document is empty")

        corrected = self.flows.correct_grammar(doc.content)
        self.files.update_content(doc.name, corrected)
        return corrected

    def rewrite(self, instructions: str, name: Optional[str] = None) -> str:
        if not (instructions or "").strip():
            raise EmptyInputError("Please provide rewrite instructions.")
        doc = self._file(name, FileKind.DOCUMENT)

        rewritten = self.flows.rewrite_document(doc.content, instructions)
        self.files.update_content(doc.name, rewritten)
        return rewritten

    def send_chat(self, instruction: str, name: Optional[str] = None) -> ChatMessage:
        """
        Ask the assistant to change the document.

        The reply goes into the chat history and the rewritten document is
        held as a suggestion until applied or discarded.
        """
        if not (instruction or "").strip():
            raise EmptyInputError("Please type a message.")
        doc = self._file(name, FileKind.DOCUMENT)

        if self.chat.document_name not in (None, doc.name):
            self.chat.reset()
        self.chat.document_name = doc.name

        history = self.chat.history_text()
        self.chat.messages.append(ChatMessage(role="user", content=instruction))
        self.chat.suggestion = None

        try:
            result = self.flows.chat_with_document(doc.content, instruction, history or None)
        except FlowError:
            self.chat.messages.append(ChatMessage(role="bot", content=CHAT_ERROR_REPLY))
            raise

        reply = ChatMessage(role="bot", content=result.reply)
        self.chat.messages.append(reply)
        self.chat.suggestion = result.rewritten_document
        return reply

    def apply_suggestion(self) -> str:
        if self.chat.suggestion is None or not self.chat.document_name:
            raise EmptyInputError("There is no suggestion to apply")

        content = self.chat.suggestion
        self.files.update_content(self.chat.document_name, content)
        self.chat.reset()
        return content

    def discard_suggestion(self):
        self.chat.suggestion = None

    # ============== Spreadsheet AI ==============

    def manipulate_data(
        self,
        instruction: str,
        selected_range: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Table:
        if not (instruction or "").strip():
            raise EmptyInputError("Please provide data manipulation instructions.")
        sheet = self._file(name, FileKind.SPREADSHEET)
        selected_range = selected_range or default_range(csv_codec.decode(sheet.content))

        manipulated = self.flows.manipulate_data(sheet.content, selected_range, instruction).strip()
        table = csv_codec.decode(manipulated)
        if not table.columns:
            raise FlowError(FlowKind.MANIPULATE_DATA.value, "the model returned no CSV data")

        self.files.update_content(sheet.name, manipulated)
        return table

    def create_formula(self, description: str, name: Optional[str] = None) -> str:
        if not (description or "").strip():
            raise EmptyInputError("Please describe the calculation.")
        columns = self.table(name).columns
        return self.flows.create_formula(description, columns)
