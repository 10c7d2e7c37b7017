"""Shared fixtures for CLI tests.

Every command selects its image tool through ``select_image_tool``; the
``cli_registry`` fixture patches that name in each command module so the
commands talk to the in-memory registry instead of crane or docker.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.helpers import CORE_KIT, MY_SDK, FakeImageTool, write_project

_COMMAND_MODULES = ("kitlock.cli.update", "kitlock.cli.fetch", "kitlock.cli.verify")


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def cli_registry(
    core_kit_registry: FakeImageTool, monkeypatch: pytest.MonkeyPatch
) -> FakeImageTool:
    """The core-kit registry, wired into every CLI command."""
    for module in _COMMAND_MODULES:
        monkeypatch.setattr(f"{module}.select_image_tool", lambda: core_kit_registry)
    return core_kit_registry


@pytest.fixture
def project_file(tmp_path: Path) -> Path:
    """``Twoliter.toml`` depending on core-kit with an explicit SDK."""
    return write_project(tmp_path / "project", kits=[CORE_KIT], sdk=MY_SDK)
