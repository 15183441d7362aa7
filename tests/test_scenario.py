"""
End-to-end lifecycle of one annotation through the on-disk files.

create -> duplicate rejected -> migrate todo to fixme -> delete
"""

import json

import pytest

from grime.errors import DuplicateAnnotationError


def _read(grime, name):
    return json.loads((grime.context.storage_dir / name).read_text())


def test_annotation_lifecycle(grime, workspace):
    auth = workspace / "src" / "auth.js"

    rec = grime.add("todo", "fix login bug", file=auth, line=42)

    todos = _read(grime, "todos.json")
    assert todos == [{
        "id": rec.id,
        "type": "todo",
        "description": "fix login bug",
        "created_at": rec.created_at,
        "file": "src/auth.js",
        "line": 42,
        "from_comment": False,
    }]

    raw_before = (grime.context.storage_dir / "todos.json").read_bytes()
    with pytest.raises(DuplicateAnnotationError):
        grime.add("todo", "fix login bug", file=auth, line=42)
    assert (grime.context.storage_dir / "todos.json").read_bytes() == raw_before

    grime.edit(rec.id, type="fixme", description="Fix login bug urgently")

    assert _read(grime, "todos.json") == []
    fixes = _read(grime, "fixes.json")
    assert len(fixes) == 1
    assert fixes[0]["id"] == rec.id
    assert fixes[0]["type"] == "fixme"
    assert fixes[0]["file"] == "src/auth.js"
    assert fixes[0]["line"] == 42
    assert fixes[0]["description"] == "Fix login bug urgently"
    assert fixes[0]["created_at"] == rec.created_at

    grime.delete(rec.id, "fixme")

    assert _read(grime, "fixes.json") == []
    assert (grime.context.storage_dir / "fixes.json").read_text() == "[]\n"
