from __future__ import annotations

from aitherflow.shared.formatters.tool_call import format_tool_call, tool_label


def test_file_tools_use_basename() -> None:
    assert tool_label("Read", {"file_path": "/src/app/main.py"}) == "Reading main.py"
    assert tool_label("Edit", {"file_path": "/src/app/"}) == "Editing app"
    assert tool_label("Write", {}) == "Writing file"


def test_bash_detail_is_collapsed_and_truncated() -> None:
    call = format_tool_call("Bash", {"command": "ls   -la\n" + "x" * 100})
    assert call.label == "Running command"
    assert call.detail.startswith("ls -la ")
    assert len(call.detail) == 60
    assert call.detail.endswith("…")


def test_search_tools() -> None:
    assert format_tool_call("Grep", {"pattern": "TODO"}).detail == "TODO"
    assert format_tool_call("Glob", {"pattern": "**/*.py"}).label == "Searching files"
    assert format_tool_call("WebFetch", {"url": "https://x.test"}).detail == "https://x.test"


def test_todo_write_counts_items() -> None:
    assert format_tool_call("TodoWrite", {"todos": [{}, {}]}).detail == "2 item(s)"


def test_unknown_tool_falls_back_to_name() -> None:
    call = format_tool_call("mcp__thing", None)
    assert call.label == "mcp__thing"
    assert call.detail == ""
