"""Tests for the command-line entry point."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from tasksync.main import build_parser, main


class TestParser:
    """Test argument parsing."""

    def test_defaults(self):
        """Test no arguments means an interactive session."""
        args = build_parser().parse_args([])
        assert args.path is None
        assert not args.show
        assert not args.normalize
        assert args.log_level is None

    def test_log_level_case_insensitive(self):
        """Test lower-case log levels are accepted."""
        assert build_parser().parse_args(["--log-level", "debug"]).log_level == "DEBUG"

    def test_show_and_normalize_exclusive(self):
        """Test the one-shot modes cannot be combined."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["x.md", "--show", "--normalize"])


class TestOneShot:
    """Test --show and --normalize."""

    def test_show(self, tmp_path: Path, capsys):
        """Test the parsed tasks are listed."""
        path = tmp_path / "tasks.md"
        path.write_text("# Week\n- [ ] Buy milk\n- [x] Call mom\n")

        assert main([str(path), "--show"]) == 0
        out = capsys.readouterr().out
        assert "Backlog (1)" in out
        assert "Buy milk" in out
        assert "Completed (1)" in out
        assert "Other lines: 1" in out

    def test_normalize(self, tmp_path: Path, capsys):
        """Test the file is echoed as it would be written back."""
        path = tmp_path / "tasks.md"
        path.write_text("# Week\n- [X] Call mom\n- [ ] \n")

        assert main([str(path), "--normalize"]) == 0
        assert capsys.readouterr().out == "# Week\n- [x] Call mom\n- [ ] \n"

    def test_missing_file(self, tmp_path: Path, capsys):
        """Test an unreadable file exits with status 1."""
        assert main([str(tmp_path / "missing.md"), "--show"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_no_path(self, capsys):
        """Test one-shot modes need a file."""
        with patch.dict(os.environ, {"TASKSYNC_TASK_FILE": ""}):
            assert main(["--show"]) == 2

    def test_path_from_environment(self, tmp_path: Path, capsys):
        """Test the configured task file is used when none is given."""
        path = tmp_path / "tasks.md"
        path.write_text("- [ ] From env\n")
        with patch.dict(os.environ, {"TASKSYNC_TASK_FILE": str(path)}):
            assert main(["--show"]) == 0
        assert "From env" in capsys.readouterr().out


class TestInteractive:
    """Test the shell entry."""

    def test_missing_file_exits(self, tmp_path: Path):
        """Test the shell is not started when the file cannot be loaded."""
        with patch("tasksync.main.TaskShell") as shell:
            assert main([str(tmp_path / "missing.md")]) == 1
            shell.assert_not_called()

    def test_shell_started(self, tmp_path: Path):
        """Test a loaded file hands a manager to the shell."""
        path = tmp_path / "tasks.md"
        path.write_text("- [ ] A\n")
        with patch("tasksync.main.TaskShell") as shell:
            assert main([str(path)]) == 0
        manager = shell.call_args.args[0]
        assert manager.path == path
        assert manager.document.as_dict()["backlog"] == ["A"]
        shell.return_value.run.assert_called_once()
