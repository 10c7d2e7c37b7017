"""Tests for CLI error handling edge cases.

Verifies graceful handling of:
    - No Twoliter.toml in the directory tree.
    - Unknown image tool named in the environment.
    - Unknown subcommands and log levels.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from kitlock.cli.main import cli
from kitlock.core.imagetool import IMAGE_TOOL_ENV_VAR


class TestProjectDiscovery:
    """Tests for locating the project file."""

    def test_no_project_file(self, runner: CliRunner, tmp_path: Path) -> None:
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(cli, ["update"])
        assert result.exit_code == 1
        assert "Unable to find Twoliter.toml" in result.output

    def test_found_from_subdirectory(
        self, runner: CliRunner, cli_registry, project_file: Path
    ) -> None:
        nested = project_file.parent / "sources" / "kit"
        nested.mkdir(parents=True)
        result = runner.invoke(cli, ["update", "--project-path", str(nested)])
        assert result.exit_code == 0, result.output
        assert (project_file.parent / "Twoliter.lock").is_file()


class TestImageToolSelection:
    """Tests for a misconfigured image tool."""

    def test_unsupported_tool(
        self, runner: CliRunner, project_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(IMAGE_TOOL_ENV_VAR, "podman")
        result = runner.invoke(cli, ["update", "--project-path", str(project_file)])
        assert result.exit_code == 1
        assert "Unsupported container image tool" in result.output


class TestUsageErrors:
    """Tests for Click usage errors."""

    def test_unknown_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["lock"])
        assert result.exit_code == 2

    def test_invalid_log_level(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--log-level", "loud", "update"])
        assert result.exit_code == 2
