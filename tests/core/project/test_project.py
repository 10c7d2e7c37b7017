"""Tests for loading and querying a Project.

Covers Twoliter.toml validation, upward discovery, Twoliter.override
loading, the deprecated Release.toml check, vendor lookup with overrides,
and clearing of stale verification markers on load.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from kitlock.core.lock import KITS_VERIFIED_MARKER_FILE, SDK_VERIFIED_MARKER_FILE
from kitlock.core.project import (
    Image,
    OverriddenVendor,
    Project,
    VerbatimVendor,
)
from kitlock.exceptions import ProjectError
from tests.helpers import CORE_KIT, MY_SDK, REGISTRY, write_project


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestProjectLoad:
    """Project.load validates Twoliter.toml."""

    def test_loads_declarations(self, tmp_path: Path) -> None:
        path = write_project(tmp_path, kits=[CORE_KIT], sdk=MY_SDK, release_version="3.1.0")
        project = Project.load(path)
        assert project.schema_version == 1
        assert project.release_version == "3.1.0"
        assert project.sdk == MY_SDK
        assert project.direct_kit_deps() == [CORE_KIT]
        assert project.vendor["acme"].registry == REGISTRY
        assert project.overrides == {}

    def test_paths_relative_to_project_dir(self, tmp_path: Path) -> None:
        project = Project.load(write_project(tmp_path, kits=[CORE_KIT]))
        root = tmp_path.resolve()
        assert project.project_dir == root
        assert project.lock_file == root / "Twoliter.lock"
        assert project.external_kits_dir == root / "build" / "external-kits"
        assert project.external_kits_metadata == (
            root / "build" / "external-kits" / "external-kit-metadata.json"
        )

    def test_kits_and_sdk_optional(self, tmp_path: Path) -> None:
        project = Project.load(write_project(tmp_path))
        assert project.sdk is None
        assert project.direct_kit_deps() == []
        assert project.direct_sdk_image_dep() is None

    def test_unsupported_schema_version(self, tmp_path: Path) -> None:
        (tmp_path / "Twoliter.toml").write_text('schema-version = 2\nrelease-version = "1.0.0"\n')
        with pytest.raises(ProjectError, match="schema-version"):
            Project.load(tmp_path / "Twoliter.toml")

    def test_missing_release_version(self, tmp_path: Path) -> None:
        (tmp_path / "Twoliter.toml").write_text("schema-version = 1\n")
        with pytest.raises(ProjectError, match="release-version"):
            Project.load(tmp_path / "Twoliter.toml")

    def test_malformed_toml(self, tmp_path: Path) -> None:
        (tmp_path / "Twoliter.toml").write_text("schema-version = = 1\n")
        with pytest.raises(ProjectError, match="Unable to deserialize"):
            Project.load(tmp_path / "Twoliter.toml")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ProjectError, match="Unable to read"):
            Project.load(tmp_path / "Twoliter.toml")

    def test_undeclared_vendor_rejected(self, tmp_path: Path) -> None:
        stranger = Image("core-kit", "1.0.0", "stranger")
        with pytest.raises(ProjectError, match="'stranger'"):
            Project.load(write_project(tmp_path, kits=[stranger]))

    def test_undeclared_sdk_vendor_rejected(self, tmp_path: Path) -> None:
        sdk = Image("my-sdk", "2.0.0", "stranger")
        with pytest.raises(ProjectError, match="not specified in Twoliter.toml"):
            Project.load(write_project(tmp_path, sdk=sdk))

    def test_load_removes_stale_markers(self, tmp_path: Path) -> None:
        path = write_project(tmp_path, kits=[CORE_KIT])
        kits_dir = tmp_path / "build" / "external-kits"
        kits_dir.mkdir(parents=True)
        (kits_dir / SDK_VERIFIED_MARKER_FILE).write_text("[]")
        (kits_dir / KITS_VERIFIED_MARKER_FILE).write_text("[]")
        Project.load(path)
        assert not (kits_dir / SDK_VERIFIED_MARKER_FILE).exists()
        assert not (kits_dir / KITS_VERIFIED_MARKER_FILE).exists()


class TestFindAndLoad:
    def test_finds_in_parent_directory(self, tmp_path: Path) -> None:
        write_project(tmp_path, kits=[CORE_KIT])
        nested = tmp_path / "packages" / "hello"
        nested.mkdir(parents=True)
        project = Project.find_and_load(nested)
        assert project.filepath == (tmp_path / "Twoliter.toml").resolve()

    def test_finds_in_same_directory(self, tmp_path: Path) -> None:
        write_project(tmp_path)
        assert Project.find_and_load(tmp_path).project_dir == tmp_path.resolve()

    def test_not_a_directory(self, tmp_path: Path) -> None:
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")
        with pytest.raises(ProjectError, match="not a directory"):
            Project.find_and_load(file_path)


# ---------------------------------------------------------------------------
# Release.toml
# ---------------------------------------------------------------------------


class TestReleaseToml:
    """A deprecated Release.toml must agree with release-version."""

    def test_matching_version_accepted(self, tmp_path: Path) -> None:
        (tmp_path / "Release.toml").write_text('version = "1.0.0"\n')
        Project.load(write_project(tmp_path, release_version="1.0.0"))

    def test_mismatched_version_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "Release.toml").write_text('version = "0.9.0"\n')
        with pytest.raises(ProjectError, match="does not match"):
            Project.load(write_project(tmp_path, release_version="1.0.0"))

    def test_deprecation_warning_logged(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        (tmp_path / "Release.toml").write_text('version = "1.0.0"\n')
        with caplog.at_level("WARNING"):
            Project.load(write_project(tmp_path))
        assert "Release.toml is deprecated" in caplog.text

    def test_unparseable_release_toml_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "Release.toml").write_text("version = \n")
        Project.load(write_project(tmp_path))

    def test_release_toml_without_version_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "Release.toml").write_text('name = "x"\n')
        Project.load(write_project(tmp_path))

    def test_non_string_version_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "Release.toml").write_text("version = 1\n")
        with pytest.raises(ProjectError, match="not a string"):
            Project.load(write_project(tmp_path))


# ---------------------------------------------------------------------------
# Vendors and overrides
# ---------------------------------------------------------------------------


class TestVendorLookup:
    """vendor_for honors Twoliter.override; as_project_image builds URIs."""

    def test_verbatim_vendor(self, tmp_path: Path) -> None:
        project = Project.load(write_project(tmp_path, kits=[CORE_KIT]))
        vendor = project.vendor_for(CORE_KIT)
        assert isinstance(vendor, VerbatimVendor)
        image = project.as_project_image(CORE_KIT)
        assert str(image.project_image_uri()) == f"{REGISTRY}/core-kit:v1.0.0"
        assert image.project_image_uri() == image.original_source_uri()

    def test_unknown_vendor(self, tmp_path: Path) -> None:
        project = Project.load(write_project(tmp_path))
        stranger = Image("core-kit", "1.0.0", "stranger")
        assert project.vendor_for(stranger) is None
        with pytest.raises(ProjectError, match="vendor 'stranger' is not specified"):
            project.as_project_image(stranger)

    def test_override_changes_fetch_uri_only(self, tmp_path: Path) -> None:
        path = write_project(tmp_path, kits=[CORE_KIT])
        (tmp_path / "Twoliter.override").write_text(
            '[acme.core-kit]\nregistry = "localhost:5000"\nname = "core-kit-dev"\n'
        )
        project = Project.load(path)
        vendor = project.vendor_for(CORE_KIT)
        assert isinstance(vendor, OverriddenVendor)
        image = project.as_project_image(CORE_KIT)
        assert str(image.project_image_uri()) == "localhost:5000/core-kit-dev:v1.0.0"
        assert str(image.original_source_uri()) == f"{REGISTRY}/core-kit:v1.0.0"
        assert image.vendor_name == "acme"

    def test_partial_override_keeps_other_fields(self, tmp_path: Path) -> None:
        path = write_project(tmp_path, kits=[CORE_KIT])
        (tmp_path / "Twoliter.override").write_text('[acme.core-kit]\nname = "renamed"\n')
        image = Project.load(path).as_project_image(CORE_KIT)
        assert str(image.project_image_uri()) == f"{REGISTRY}/renamed:v1.0.0"

    def test_override_for_other_artifact_ignored(self, tmp_path: Path) -> None:
        path = write_project(tmp_path, kits=[CORE_KIT])
        (tmp_path / "Twoliter.override").write_text('[acme.other-kit]\nname = "x"\n')
        assert isinstance(Project.load(path).vendor_for(CORE_KIT), VerbatimVendor)

    def test_malformed_override_rejected(self, tmp_path: Path) -> None:
        path = write_project(tmp_path, kits=[CORE_KIT])
        (tmp_path / "Twoliter.override").write_text('[acme.core-kit]\ntag = "latest"\n')
        with pytest.raises(ProjectError, match="unknown keys"):
            Project.load(path)

    def test_direct_sdk_image_dep(self, tmp_path: Path) -> None:
        project = Project.load(write_project(tmp_path, sdk=MY_SDK))
        sdk = project.direct_sdk_image_dep()
        assert sdk is not None
        assert str(sdk.project_image_uri()) == f"{REGISTRY}/my-sdk:v2.0.0"
