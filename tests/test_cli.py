import pytest
from click.testing import CliRunner

from inkwell.cli import cli
from inkwell.flows import FlowClient
from inkwell.store import DEFAULT_FILES, SqliteBlobStore


@pytest.fixture()
def db(tmp_path):
    return str(tmp_path / "cli.db")


def run(db, *args, **kwargs):
    return CliRunner().invoke(cli, ["--db", db, *args], obj={}, **kwargs)


def test_files_list_shows_defaults(db):
    result = run(db, "files", "list")
    assert result.exit_code == 0
    for name in DEFAULT_FILES:
        assert name in result.output


def test_files_show(db):
    result = run(db, "files", "show", "spreadsheet-1.csv")
    assert result.exit_code == 0
    assert "id,Product,Quantity,Price" in result.output


def test_files_show_missing(db):
    result = run(db, "files", "show", "nope.md")
    assert result.exit_code != 0
    assert "File not found" in result.output


def test_import_rename_remove(db, tmp_path):
    source = tmp_path / "notes.md"
    source.write_text("# Notes", encoding="utf-8")

    assert run(db, "files", "import", str(source)).exit_code == 0
    assert SqliteBlobStore(db).load()["notes.md"] == "# Notes"

    assert run(db, "files", "rename", "notes.md", "journal").exit_code == 0
    assert "journal.md" in SqliteBlobStore(db).load()

    assert run(db, "files", "remove", "journal.md").exit_code == 0
    assert "journal.md" not in SqliteBlobStore(db).load()


def test_import_duplicate(db, tmp_path):
    source = tmp_path / "document-1.md"
    source.write_text("dup", encoding="utf-8")
    run(db, "files", "import", str(source))
    result = run(db, "files", "import", str(source))
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_export(db, tmp_path):
    out = tmp_path / "out.csv"
    result = run(db, "files", "export", "spreadsheet-1.csv", "-o", str(out))
    assert result.exit_code == 0
    assert "text/csv" in result.output
    assert out.read_text(encoding="utf-8") == DEFAULT_FILES["spreadsheet-1.csv"]


def test_reset(db, tmp_path):
    source = tmp_path / "extra.md"
    source.write_text("x", encoding="utf-8")
    run(db, "files", "import", str(source))

    result = run(db, "reset", "--yes")
    assert result.exit_code == 0
    assert SqliteBlobStore(db).load() == DEFAULT_FILES


def test_formula_uses_first_spreadsheet(db, monkeypatch):
    seen = {}

    def fake_create_formula(self, description, column_names):
        seen["columns"] = column_names
        return "SUM(Price)"

    monkeypatch.setattr(FlowClient, "create_formula", fake_create_formula)
    result = run(db, "formula", "total price")
    assert result.exit_code == 0
    assert "SUM(Price)" in result.output
    assert seen["columns"] == ["id", "Product", "Quantity", "Price"]
