"""
Inkwell - Flask Application

JSON API over a single workspace: file management, spreadsheet edits,
export and the AI helpers. Every /api route except unlock sits behind
the passcode gate.
"""

import logging
from typing import Optional

from flask import Flask, Response, jsonify, request, session
from flask_cors import CORS

from . import config
from .auth import INVALID_PASSCODE, PasscodeGate
from .errors import EmptyInputError, FlowError, UnsupportedFileTypeError, WorkspaceError
from .models import FileKind
from .store import SqliteBlobStore
from .workspace import Workspace

logger = logging.getLogger(__name__)

OPEN_ENDPOINTS = {"health", "unlock", "static"}

FLOW_FAILURES = {
    "correct_grammar": "Failed to correct grammar.",
    "rewrite": "Failed to rewrite text.",
    "chat_send": "The AI failed to respond.",
    "manipulate": "Failed to manipulate data.",
    "formula": "Failed to create formula.",
}


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _file_summary(workspace: Workspace) -> dict:
    files = workspace.files
    return {
        "files": [
            {"name": name, "kind": files.get(name).kind.value, "selected": name == files.selected}
            for name in files.names()
        ],
        "active": files.selected,
        "dirty": files.dirty,
    }


def _file_detail(workspace: Workspace, name: str) -> dict:
    f = workspace.files.get(name)
    result = f.to_dict()
    if f.kind is FileKind.SPREADSHEET:
        result["table"] = workspace.table(name).to_dict()
    return result


def create_app(
    workspace: Optional[Workspace] = None,
    passcode: Optional[str] = None,
    secret_key: Optional[str] = None,
) -> Flask:
    """Build the app around a workspace, loading it from disk if none is given."""
    app = Flask(__name__)
    app.secret_key = secret_key or config.SECRET_KEY
    CORS(app, supports_credentials=True)

    if workspace is None:
        workspace = Workspace(SqliteBlobStore(config.DB_PATH))
        workspace.load()
    gate = PasscodeGate(config.PASSCODE if passcode is None else passcode)
    app.extensions["inkwell"] = workspace

    # ============== Gate & errors ==============

    @app.before_request
    def require_unlock():
        if request.endpoint in OPEN_ENDPOINTS or request.method == "OPTIONS":
            return None
        if request.path.startswith("/api/") and not session.get("unlocked"):
            return jsonify({"error": "Workspace is locked"}), 401
        return None

    @app.errorhandler(FlowError)
    def handle_flow_error(e):
        logger.error(f"AI flow failed: {e}")
        message = FLOW_FAILURES.get(request.endpoint, "Operation failed.")
        return jsonify({"error": message}), e.status_code

    @app.errorhandler(WorkspaceError)
    def handle_workspace_error(e):
        return jsonify({"error": str(e)}), e.status_code

    @app.route('/health')
    def health():
        """Health check"""
        return jsonify({"status": "ok"})

    @app.route('/api/unlock', methods=['POST'])
    def unlock():
        if not gate.check(_body().get("passcode", "")):
            return jsonify({"error": INVALID_PASSCODE}), 401
        session["unlocked"] = True
        return jsonify({"status": "unlocked"})

    @app.route('/api/lock', methods=['POST'])
    def lock():
        session.pop("unlocked", None)
        return jsonify({"status": "locked"})

    # ============== Files ==============

    @app.route('/api/files', methods=['GET'])
    def list_files():
        return jsonify(_file_summary(workspace))

    @app.route('/api/files', methods=['POST'])
    def create_file():
        data = _body()
        kind = data.get("kind")
        try:
            kind = FileKind(kind) if kind else None
        except ValueError:
            raise UnsupportedFileTypeError(f"Unknown file kind: {kind}")
        content = data.get("content")
        f = workspace.files.create(
            str(data.get("name") or ""),
            kind=kind,
            content="" if content is None else str(content),
        )
        if data.get("select", True):
            workspace.files.select(f.name)
        return jsonify(_file_detail(workspace, f.name)), 201

    @app.route('/api/files/<name>', methods=['GET'])
    def get_file(name):
        return jsonify(_file_detail(workspace, name))

    @app.route('/api/files/<name>', methods=['PUT'])
    def update_file(name):
        data = _body()
        if "content" not in data:
            raise EmptyInputError("content is required")
        workspace.files.update_content(name, str(data["content"]))
        return jsonify(_file_detail(workspace, name))

    @app.route('/api/files/<name>/rename', methods=['POST'])
    def rename_file(name):
        f = workspace.files.rename(name, _body().get("new_name", ""))
        return jsonify(_file_detail(workspace, f.name))

    @app.route('/api/files/<name>/select', methods=['POST'])
    def select_file(name):
        workspace.files.select(name)
        return jsonify(_file_detail(workspace, name))

    @app.route('/api/files/<name>', methods=['DELETE'])
    def delete_file(name):
        workspace.files.delete(name)
        return jsonify(_file_summary(workspace))

    @app.route('/api/files/<name>/export', methods=['GET'])
    def export_file(name):
        exported = workspace.export(name)
        return Response(
            exported.content,
            mimetype=exported.mimetype,
            headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'}
        )

    @app.route('/api/save', methods=['POST'])
    def save():
        workspace.save()
        return jsonify({"status": "saved", **_file_summary(workspace)})

    @app.route('/api/reload', methods=['POST'])
    def reload():
        workspace.load()
        return jsonify({"status": "loaded", **_file_summary(workspace)})

    # ============== Spreadsheets ==============

    @app.route('/api/sheets/<name>/cells', methods=['PUT'])
    def set_cell(name):
        data = _body()
        try:
            row = int(data.get("row"))
        except (TypeError, ValueError):
            raise EmptyInputError("row must be an integer")
        table = workspace.sheet(name).set_cell(row, data.get("column", ""), data.get("value", ""))
        return jsonify(table.to_dict())

    @app.route('/api/sheets/<name>/columns', methods=['POST'])
    def add_column(name):
        table = workspace.sheet(name).add_column(_body().get("name", ""))
        return jsonify(table.to_dict()), 201

    @app.route('/api/sheets/<name>/columns/<column>', methods=['PUT'])
    def rename_column(name, column):
        table = workspace.sheet(name).rename_column(column, _body().get("new_name", ""))
        return jsonify(table.to_dict())

    @app.route('/api/sheets/<name>/rows', methods=['POST'])
    def add_row(name):
        table = workspace.sheet(name).add_row()
        return jsonify(table.to_dict()), 201

    # ============== AI ==============

    @app.route('/api/ai/grammar', methods=['POST'])
    def correct_grammar():
        name = _body().get("file")
        content = workspace.correct_grammar(name)
        return jsonify({"content": content})

    @app.route('/api/ai/rewrite', methods=['POST'])
    def rewrite():
        data = _body()
        content = workspace.rewrite(data.get("instructions", ""), data.get("file"))
        return jsonify({"content": content})

    @app.route('/api/ai/manipulate', methods=['POST'])
    def manipulate():
        data = _body()
        table = workspace.manipulate_data(
            data.get("instruction", ""),
            selected_range=data.get("selected_range"),
            name=data.get("file"),
        )
        return jsonify(table.to_dict())

    @app.route('/api/ai/formula', methods=['POST'])
    def formula():
        data = _body()
        result = workspace.create_formula(data.get("description", ""), data.get("file"))
        return jsonify({"formula": result})

    @app.route('/api/ai/chat', methods=['GET'])
    def chat_history():
        return jsonify(workspace.chat.to_dict())

    @app.route('/api/ai/chat', methods=['POST'])
    def chat_send():
        data = _body()
        workspace.send_chat(data.get("instruction", ""), data.get("file"))
        return jsonify(workspace.chat.to_dict())

    @app.route('/api/ai/chat/apply', methods=['POST'])
    def chat_apply():
        name = workspace.chat.document_name
        workspace.apply_suggestion()
        return jsonify(_file_detail(workspace, name))

    @app.route('/api/ai/chat/discard', methods=['POST'])
    def chat_discard():
        workspace.discard_suggestion()
        return jsonify(workspace.chat.to_dict())

    return app
