from __future__ import annotations

import logging
import sys

import pytest

from aitherflow import app as app_module
from aitherflow.shared.services.projects import ProjectEntry, ProjectStore


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_writes_rotating_file(tmp_path, restore_root_logger) -> None:
    log_file = tmp_path / "logs" / "aitherflow.log"
    app_module.configure_logging("debug", log_file)

    logging.getLogger("aitherflow.test").debug("hello log")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert logging.getLogger().level == logging.DEBUG
    assert "hello log" in log_file.read_text()


def test_list_projects_prints_saved_entries(tmp_path, monkeypatch, capsys) -> None:
    ProjectStore(tmp_path / "projects.json").save([
        ProjectEntry(id="p1", name="alpha", path="/src/alpha", added_at=1),
    ])
    monkeypatch.setenv("AITHERFLOW_CONFIG_DIR", str(tmp_path))
    monkeypatch.setattr(sys, "argv", ["aitherflow", "--list-projects"])

    with pytest.raises(SystemExit) as info:
        app_module.main()

    assert info.value.code == 0
    assert "alpha\t/src/alpha" in capsys.readouterr().out


def test_list_projects_reports_corrupt_file(tmp_path, monkeypatch, capsys) -> None:
    (tmp_path / "projects.json").write_text("{")
    monkeypatch.setenv("AITHERFLOW_CONFIG_DIR", str(tmp_path))
    monkeypatch.setattr(sys, "argv", ["aitherflow", "--list-projects"])

    with pytest.raises(SystemExit) as info:
        app_module.main()

    assert info.value.code == 1
    assert "Failed to parse" in capsys.readouterr().err
