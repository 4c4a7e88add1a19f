"""
Error types for Inkwell.

Every error carries the HTTP status the API answers with.
"""


class WorkspaceError(Exception):
    """Base class for recoverable workspace errors."""
    status_code = 400


class EmptyInputError(WorkspaceError):
    """A required field was blank."""


class UnsupportedFileTypeError(WorkspaceError):
    """A file name that maps to no known file kind."""


class WrongFileKindError(WorkspaceError):
    """Operation needs a document but got a spreadsheet, or vice versa."""


class NoColumnsError(WorkspaceError):
    """Rows cannot be added to a table with no columns."""


class UnknownFileError(WorkspaceError):
    status_code = 404


class UnknownColumnError(WorkspaceError):
    status_code = 404


class NameConflictError(WorkspaceError):
    """A file or column with that name already exists."""
    status_code = 409


class FlowError(WorkspaceError):
    """An AI flow failed (network, model or schema)."""
    status_code = 502

    def __init__(self, flow: str, message: str):
        super().__init__(f"{flow}: {message}")
        self.flow = flow
