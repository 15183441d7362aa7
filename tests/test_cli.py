"""Tests for the grime CLI."""

import json

import pytest
from typer.testing import CliRunner

from grime.cli import app
from grime.workspace import workspace_hash


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli(runner, workspace, storage_root):
    """Invoke the CLI against the test workspace and storage root."""
    def invoke(*args, input=None):
        return runner.invoke(
            app,
            ["--workspace", str(workspace), "--storage", str(storage_root), *args],
            input=input,
        )
    return invoke


def _add_json(cli, *args) -> dict:
    result = cli("--json", "add", *args)
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


class TestAdd:

    def test_add_prints_id(self, cli, storage_root, workspace):
        result = cli("add", "todo", "fix login bug")
        assert result.exit_code == 0, result.output
        assert result.output.startswith("todo saved: ")

        todos = json.loads((storage_root / workspace_hash(workspace) / "todos.json").read_text())
        assert len(todos) == 1
        assert todos[0]["description"] == "fix login bug"

    def test_add_with_file_and_line(self, cli, workspace):
        data = _add_json(cli, "FIXME", "bad auth", "--file", str(workspace / "src" / "auth.js"), "--line", "7")
        assert data["type"] == "fixme"
        assert data["file"] == "src/auth.js"
        assert data["line"] == 7
        assert data["from_comment"] is False

    def test_relative_file_resolved_against_workspace(self, cli, tmp_path, monkeypatch):
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        monkeypatch.chdir(elsewhere)
        data = _add_json(cli, "todo", "relative", "--file", "src/auth.js", "--line", "3")
        assert data["file"] == "src/auth.js"
        assert data["line"] == 3

    def test_duplicate_exits_1(self, cli):
        assert cli("add", "todo", "same").exit_code == 0
        result = cli("add", "todo", "  SAME ")
        assert result.exit_code == 1
        assert "Duplicate annotation" in result.output

    def test_invalid_type(self, cli):
        result = cli("add", "bug", "x")
        assert result.exit_code != 0

    def test_line_requires_file(self, cli):
        result = cli("add", "todo", "x", "--line", "3")
        assert result.exit_code == 1
        assert "--line requires --file" in result.output

    def test_line_must_be_positive(self, cli, workspace):
        result = cli("add", "todo", "x", "--file", str(workspace / "README.md"), "--line", "0")
        assert result.exit_code != 0

    def test_empty_description(self, cli):
        result = cli("add", "note", "   ")
        assert result.exit_code == 1
        assert "must not be empty" in result.output

    def test_file_outside_workspace_warns(self, cli, tmp_path):
        outside = tmp_path / "elsewhere.txt"
        outside.write_text("x")
        result = cli("add", "note", "outside", "--file", str(outside))
        assert result.exit_code == 0
        assert "outside the workspace" in result.output


class TestListShow:

    def test_list_tree(self, cli):
        cli("add", "todo", "first")
        cli("add", "note", "remember")
        result = cli("list")
        assert result.exit_code == 0
        assert "Todo (1)" in result.output
        assert "first" in result.output
        assert "Note (1)" in result.output
        assert "Fixme (0)" in result.output

    def test_list_filtered(self, cli):
        cli("add", "todo", "first")
        cli("add", "note", "remember")
        result = cli("list", "note")
        assert "Note (1)" in result.output
        assert "Todo" not in result.output

    def test_list_json(self, cli):
        rec = _add_json(cli, "chore", "sweep")
        result = cli("--json", "list")
        data = json.loads(result.output)
        assert list(data) == ["todo", "fixme", "chore", "note"]
        assert data["chore"] == [rec]

    def test_no_subcommand_shows_tree(self, cli):
        cli("add", "todo", "first")
        result = cli()
        assert result.exit_code == 0
        assert "Todo (1)" in result.output

    def test_show(self, cli):
        rec = _add_json(cli, "todo", "inspect me")
        result = cli("show", rec["id"][:8])
        assert result.exit_code == 0
        assert f"id: {rec['id']}" in result.output
        assert "description: inspect me" in result.output

    def test_show_missing(self, cli):
        result = cli("show", "nope")
        assert result.exit_code == 1
        assert "not found" in result.output


class TestEditDelete:

    def test_edit_description(self, cli):
        rec = _add_json(cli, "todo", "old")
        result = cli("--json", "edit", rec["id"], "--description", "new")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["description"] == "new"
        assert data["id"] == rec["id"]

    def test_edit_migrates_type(self, cli, storage_root, workspace):
        rec = _add_json(cli, "todo", "move me")
        result = cli("edit", rec["id"][:8], "--type", "note")
        assert result.exit_code == 0, result.output
        assert "note was successfully updated" in result.output

        ws_dir = storage_root / workspace_hash(workspace)
        assert json.loads((ws_dir / "todos.json").read_text()) == []
        notes = json.loads((ws_dir / "notes.json").read_text())
        assert [n["id"] for n in notes] == [rec["id"]]

    def test_edit_requires_a_change(self, cli):
        rec = _add_json(cli, "todo", "x")
        result = cli("edit", rec["id"])
        assert result.exit_code == 1

    def test_edit_missing(self, cli):
        result = cli("edit", "missing", "--description", "x")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_delete(self, cli):
        rec = _add_json(cli, "fixme", "remove me")
        result = cli("delete", rec["id"])
        assert result.exit_code == 0
        assert "fixme was deleted" in result.output
        assert "remove me" not in cli("list").output

    def test_delete_alias(self, cli):
        rec = _add_json(cli, "fixme", "remove me")
        assert cli("del", rec["id"][:8]).exit_code == 0

    def test_delete_missing(self, cli):
        result = cli("delete", "missing")
        assert result.exit_code == 1
        assert "Nothing was changed" in result.output


class TestGoto:

    def test_goto_prints_location(self, cli, workspace):
        rec = _add_json(cli, "todo", "here", "--file", str(workspace / "src" / "auth.js"), "--line", "42")
        result = cli("goto", rec["id"])
        assert result.exit_code == 0
        assert result.output.strip() == f"{workspace / 'src' / 'auth.js'}:42"

    def test_goto_json(self, cli, workspace):
        rec = _add_json(cli, "todo", "here", "--file", str(workspace / "src" / "auth.js"), "--line", "42")
        data = json.loads(cli("--json", "goto", rec["id"]).output)
        assert data["line_index"] == 41

    def test_goto_without_file(self, cli):
        rec = _add_json(cli, "note", "floating")
        result = cli("goto", rec["id"])
        assert result.exit_code == 1
        assert "not associated with a file" in result.output

    def test_goto_stale_declined(self, cli, workspace):
        target = workspace / "temp.txt"
        target.write_text("x")
        rec = _add_json(cli, "todo", "stale", "--file", str(target))
        target.unlink()

        result = cli("goto", rec["id"], input="n\n")
        assert result.exit_code == 1
        assert "may be stale" in result.output
        assert "stale" in cli("list").output

    def test_goto_stale_confirmed(self, cli, workspace):
        target = workspace / "temp.txt"
        target.write_text("x")
        rec = _add_json(cli, "todo", "stale one", "--file", str(target))
        target.unlink()

        result = cli("goto", rec["id"], input="y\n")
        assert result.exit_code == 0
        assert "Stale annotation deleted" in result.output
        assert "stale one" not in cli("list").output


class TestMisc:

    def test_init(self, cli, workspace, storage_root):
        result = cli("--json", "init")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["hash"] == workspace_hash(workspace)
        assert data["storage"] == str(storage_root / workspace_hash(workspace))

    def test_init_reports_repair(self, cli, workspace, storage_root):
        ws_dir = storage_root / workspace_hash(workspace)
        ws_dir.mkdir(parents=True)
        (ws_dir / "todos.json").write_text("{{{")
        result = cli("init")
        assert result.exit_code == 0
        assert "Warning: JSON file" in result.output
        assert len(list(ws_dir.glob("todos.json.backup-*"))) == 1

    def test_hash(self, runner, tmp_path):
        result = runner.invoke(app, ["hash", str(tmp_path)])
        assert result.exit_code == 0
        assert result.output.strip() == workspace_hash(tmp_path)

    def test_config(self, runner, tmp_path):
        result = runner.invoke(app, ["--json", "config"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["config"].endswith("grime.toml")
        assert data["ops_log"] is True
