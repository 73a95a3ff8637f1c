"""
Unit tests for command execution and dependency checks.
"""

import sys
from unittest.mock import patch

import pytest

from edgebuild.system import check_dependencies, find_missing_tools, format_command, run_command
from edgebuild.validation import DependencyError


@pytest.mark.unit
class TestRunCommand:

    def test_captures_output(self):
        return_code, stdout, stderr = run_command([sys.executable, "-c", "print('hello')"])

        assert return_code == 0
        assert stdout.strip() == "hello"
        assert stderr == ""

    def test_nonzero_exit(self):
        return_code, _, stderr = run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"]
        )
        assert return_code == 3
        assert stderr == "bad"

    def test_missing_program(self):
        return_code, _, stderr = run_command(["definitely-not-a-real-tool-xyz"])

        assert return_code == -1
        assert "Command not found" in stderr

    def test_timeout(self):
        return_code, _, stderr = run_command(
            [sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2
        )
        assert return_code == -1
        assert "timed out" in stderr

    def test_cwd_and_env(self, temp_dir):
        return_code, stdout, _ = run_command(
            [sys.executable, "-c", "import os; print(os.getcwd()); print(os.environ['EDGE_TEST'])"],
            cwd=temp_dir,
            env={"EDGE_TEST": "yes", "PATH": ""},
        )
        lines = stdout.splitlines()

        assert return_code == 0
        assert lines[0] == str(temp_dir.resolve()) or lines[0] == str(temp_dir)
        assert lines[1] == "yes"

    def test_format_command_quotes_arguments(self):
        assert format_command(["open", "/Applications/ZED EDGE.app"]) == "open '/Applications/ZED EDGE.app'"
        assert format_command("cargo build") == "cargo build"


@pytest.mark.unit
class TestDependencyChecks:

    def test_find_missing_tools(self):
        with patch("edgebuild.system.commands.shutil.which", side_effect=lambda t: None if t == "cmake" else f"/bin/{t}"):
            assert find_missing_tools(["git", "cmake", "cargo"]) == ["cmake"]

    def test_all_present(self):
        with patch("edgebuild.system.commands.shutil.which", return_value="/usr/bin/tool"):
            check_dependencies(["git", "cargo"])

    def test_missing_tools_raise_with_hints(self):
        with patch("edgebuild.system.commands.shutil.which", return_value=None):
            with pytest.raises(DependencyError) as exc_info:
                check_dependencies(["git", "cargo"])

        assert exc_info.value.missing == ["git", "cargo"]
        assert "rustup" in exc_info.value.hints["cargo"]

    def test_brew_installs_allowed_tools(self):
        installed = set()

        def which(tool):
            if tool == "brew" or tool in installed:
                return f"/opt/homebrew/bin/{tool}"
            return None

        def fake_run(command, **kwargs):
            installed.add(command[-1])
            return 0, "", ""

        with patch("edgebuild.system.commands.shutil.which", side_effect=which), \
             patch("edgebuild.system.commands.run_command", side_effect=fake_run) as mock_run:
            check_dependencies(["pkg-config"], brew_installable=["pkg-config"])

        mock_run.assert_called_once_with(["brew", "install", "pkg-config"])

    def test_brew_not_used_for_other_tools(self):
        def which(tool):
            return "/opt/homebrew/bin/brew" if tool == "brew" else None

        with patch("edgebuild.system.commands.shutil.which", side_effect=which), \
             patch("edgebuild.system.commands.run_command") as mock_run:
            with pytest.raises(DependencyError) as exc_info:
                check_dependencies(["cargo"], brew_installable=["pkg-config"])

        mock_run.assert_not_called()
        assert exc_info.value.missing == ["cargo"]
