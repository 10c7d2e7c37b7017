"""Tests for SDK-only verification against the lock."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from kitlock.core.lock import (
    KITS_VERIFIED_MARKER_FILE,
    SDK_VERIFIED_MARKER_FILE,
    Lock,
    LockedSDK,
    VerifyTag,
)
from kitlock.core.project import Project
from kitlock.exceptions import LockDriftError, LockfileError, SdkResolutionError
from tests.helpers import CORE_KIT, MY_SDK, FakeImageTool, write_project


@pytest.fixture
def sdk_project(tmp_path: Path, core_kit_registry: FakeImageTool) -> Project:
    project = Project.load(write_project(tmp_path, kits=[CORE_KIT], sdk=MY_SDK))
    asyncio.run(project.create_lock(core_kit_registry))
    return project


class TestLockedSDK:
    def test_resolve_without_sdk(self, core_kit_project: Project, image_tool: FakeImageTool) -> None:
        assert asyncio.run(LockedSDK.resolve_sdk(core_kit_project, image_tool)) is None

    def test_load_matches_lock(self, sdk_project: Project, core_kit_registry: FakeImageTool) -> None:
        sdk = asyncio.run(LockedSDK.load(sdk_project, core_kit_registry))
        assert sdk.image.name == "my-sdk"
        assert sdk.image == Lock.current_lock_state(sdk_project).sdk
        assert set(sdk.verified()) == {VerifyTag.SDK}

    def test_load_does_not_touch_kits(
        self, sdk_project: Project, core_kit_registry: FakeImageTool
    ) -> None:
        # A republished kit does not matter when only the SDK is checked.
        core_kit_registry.publish_kit("core-kit", "1.0.0", sdk=MY_SDK, salt="rebuilt")
        asyncio.run(LockedSDK.load(sdk_project, core_kit_registry))

    def test_republished_sdk_is_drift(
        self, sdk_project: Project, core_kit_registry: FakeImageTool
    ) -> None:
        core_kit_registry.publish_sdk("my-sdk", "2.0.0", salt="rebuilt")
        with pytest.raises(LockDriftError, match="remote SDK image"):
            asyncio.run(LockedSDK.load(sdk_project, core_kit_registry))

    def test_project_without_sdk(
        self, core_kit_project: Project, core_kit_registry: FakeImageTool
    ) -> None:
        asyncio.run(core_kit_project.create_lock(core_kit_registry))
        with pytest.raises(SdkResolutionError, match="does not have explicit SDK"):
            asyncio.run(LockedSDK.load(core_kit_project, core_kit_registry))

    def test_missing_lockfile(self, tmp_path: Path, core_kit_registry: FakeImageTool) -> None:
        project = Project.load(write_project(tmp_path, sdk=MY_SDK))
        with pytest.raises(LockfileError):
            asyncio.run(LockedSDK.load(project, core_kit_registry))


class TestLoadLockedSdk:
    def test_writes_only_sdk_marker(
        self, sdk_project: Project, core_kit_registry: FakeImageTool
    ) -> None:
        kits_dir = sdk_project.external_kits_dir
        kits_dir.mkdir(parents=True)
        (kits_dir / KITS_VERIFIED_MARKER_FILE).write_text("[]")
        sdk = asyncio.run(sdk_project.load_locked_sdk(core_kit_registry))
        assert json.loads((kits_dir / SDK_VERIFIED_MARKER_FILE).read_bytes()) == [str(sdk.image)]
        assert not (kits_dir / KITS_VERIFIED_MARKER_FILE).exists()
