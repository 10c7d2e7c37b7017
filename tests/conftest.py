"""Shared fixtures for kitlock tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from kitlock.core.project import Project
from tests.helpers import CORE_KIT, MY_SDK, FakeImageTool, write_project


@pytest.fixture
def image_tool() -> FakeImageTool:
    """An empty in-memory registry."""
    return FakeImageTool()


@pytest.fixture
def core_kit_registry(image_tool: FakeImageTool) -> FakeImageTool:
    """Registry holding ``core-kit@1.0.0`` built against ``my-sdk@2.0.0``."""
    image_tool.publish_sdk("my-sdk", "2.0.0")
    image_tool.publish_kit("core-kit", "1.0.0", sdk=MY_SDK)
    return image_tool


@pytest.fixture
def core_kit_project(tmp_path: Path) -> Project:
    """A project depending directly on ``core-kit@1.0.0`` from ``acme``."""
    return Project.load(write_project(tmp_path / "project", kits=[CORE_KIT]))
