"""The ``Project``: a loaded and validated ``Twoliter.toml``.

A project file declares the vendors (registries) it pulls from, an optional
SDK, and its direct kit dependencies::

    schema-version = 1
    release-version = "1.0.0"

    [vendor.acme]
    registry = "r.example/acme"

    [sdk]
    name = "my-sdk"
    version = "2.0.0"
    vendor = "acme"

    [[kit]]
    name = "core-kit"
    version = "1.0.0"
    vendor = "acme"

An optional ``Twoliter.override`` next to it substitutes the registry or
repository name of individual artifacts, keyed by vendor then artifact::

    [acme.core-kit]
    registry = "localhost:5000"
    name = "core-kit-dev"
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kitlock.compatibility import SUPPORTED_PROJECT_SCHEMA_VERSION
from kitlock.core.imagetool import ImageTool
from kitlock.core.project.models import Image, Override, Vendor, validate_identifier
from kitlock.core.project.vendor import (
    ArtifactVendor,
    OverriddenVendor,
    ProjectImage,
    VendedArtifact,
    VerbatimVendor,
)
from kitlock.exceptions import ProjectError

if TYPE_CHECKING:
    from kitlock.core.lock import Lock, LockedSDK

logger = logging.getLogger(__name__)

TWOLITER_TOML = "Twoliter.toml"
TWOLITER_LOCK = "Twoliter.lock"
TWOLITER_OVERRIDES = "Twoliter.override"
RELEASE_TOML = "Release.toml"
EXTERNAL_KIT_DIRECTORY = Path("build") / "external-kits"
EXTERNAL_KIT_METADATA = EXTERNAL_KIT_DIRECTORY / "external-kit-metadata.json"


def _read_toml(path: Path, what: str) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except OSError as exc:
        raise ProjectError(f"Unable to read {what} '{path}': {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ProjectError(f"Unable to deserialize {what} '{path}': {exc}") from exc


def _load_overrides(project_dir: Path) -> dict[str, dict[str, Override]]:
    path = project_dir / TWOLITER_OVERRIDES
    if not path.exists():
        return {}
    logger.info("Detected override file, loading override information")
    data = _read_toml(path, "overrides file")
    overrides: dict[str, dict[str, Override]] = {}
    for vendor_name, artifacts in data.items():
        if not isinstance(artifacts, dict):
            raise ProjectError(f"overrides for vendor '{vendor_name}' must be a table")
        overrides[vendor_name] = {
            artifact: Override.from_dict(entry, f"override for {vendor_name}.{artifact}")
            for artifact, entry in artifacts.items()
        }
    return overrides


def _check_release_toml(project_dir: Path, release_version: str) -> None:
    """Require a deprecated ``Release.toml``, if present, to agree on the version."""
    path = project_dir / RELEASE_TOML
    if not path.is_file():
        logger.debug("This project does not have a Release.toml file (this is not a problem)")
        return
    logger.warning(
        "A Release.toml file was found. Release.toml is deprecated. "
        "Please remove it from your project."
    )
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProjectError(f"Error while checking Release.toml file at '{path}': {exc}") from exc
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        logger.warning(
            "Unable to parse Release.toml to ensure that its version matches the "
            "release-version in Twoliter.toml: %s",
            exc,
        )
        return
    if "version" not in data:
        logger.info("Release.toml does not contain a version key. Ignoring it.")
        return
    version = data["version"]
    if not isinstance(version, str):
        raise ProjectError("The version in Release.toml is not a string")
    if version != release_version:
        raise ProjectError(
            f"The version found in Release.toml, '{version}', does not match the "
            f"release-version found in Twoliter.toml '{release_version}'"
        )


class Project:
    """A validated project declaration.

    Use ``Project.load`` or ``Project.find_and_load`` rather than the
    constructor; they validate the file and clear stale verification
    markers.

    Attributes:
        filepath: Path of the loaded ``Twoliter.toml``.
        schema_version: Declared schema version (always supported).
        release_version: Version given to artifacts this project releases.
        sdk: Directly declared SDK, if any.
        vendor: Declared vendors by name.
        kit: Directly declared kit dependencies.
        overrides: Overrides by vendor name then artifact name.
    """

    def __init__(
        self,
        filepath: Path,
        schema_version: int,
        release_version: str,
        sdk: Image | None = None,
        vendor: dict[str, Vendor] | None = None,
        kit: list[Image] | None = None,
        overrides: dict[str, dict[str, Override]] | None = None,
    ) -> None:
        self.filepath = filepath
        self.schema_version = schema_version
        self.release_version = release_version
        self.sdk = sdk
        self.vendor = dict(vendor or {})
        self.kit = list(kit or [])
        self.overrides = dict(overrides or {})

    def __repr__(self) -> str:
        return f"Project(filepath={str(self.filepath)!r}, kits={len(self.kit)})"

    # -- Loading ------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any], filepath: Path) -> Project:
        """Validate a parsed project file.

        Raises:
            ProjectError: On an unsupported schema version, malformed
                entries, or a dependency on an undeclared vendor.
        """
        schema_version = data.get("schema-version")
        if schema_version != SUPPORTED_PROJECT_SCHEMA_VERSION:
            raise ProjectError(
                f"unsupported schema-version {schema_version!r} in '{filepath}', "
                f"expected {SUPPORTED_PROJECT_SCHEMA_VERSION}"
            )
        release_version = data.get("release-version")
        if not isinstance(release_version, str):
            raise ProjectError(f"'{filepath}' must declare release-version as a string")

        vendor_table = data.get("vendor", {})
        if not isinstance(vendor_table, dict):
            raise ProjectError("vendor must be a table of vendor names")
        vendors = {
            validate_identifier(name, "vendor name"): Vendor.from_dict(entry, f"vendor '{name}'")
            for name, entry in vendor_table.items()
        }

        sdk = Image.from_dict(data["sdk"], "sdk") if "sdk" in data else None
        kit_list = data.get("kit", [])
        if not isinstance(kit_list, list):
            raise ProjectError("kit must be an array of tables")
        kits = [Image.from_dict(entry, "kit") for entry in kit_list]

        for dependency in [*kits, *([sdk] if sdk is not None else [])]:
            if dependency.vendor not in vendors:
                raise ProjectError(
                    f"cannot define a dependency on vendor '{dependency.vendor}' "
                    f"that is not specified in Twoliter.toml"
                )

        _check_release_toml(filepath.parent, release_version)
        return cls(
            filepath=filepath,
            schema_version=schema_version,
            release_version=release_version,
            sdk=sdk,
            vendor=vendors,
            kit=kits,
            overrides=_load_overrides(filepath.parent),
        )

    @classmethod
    def load(cls, path: Path | str) -> Project:
        """Load a project file from ``path`` (any filename).

        Verification markers from earlier runs are removed as soon as the
        project is known, so no artifact is ever wrongly flagged as checked.
        """
        from kitlock.core.lock.verification import VerificationTagger

        try:
            filepath = Path(path).resolve(strict=True)
        except OSError as exc:
            raise ProjectError(f"Unable to read project file '{path}': {exc}") from exc
        project = cls.from_dict(_read_toml(filepath, "project file"), filepath)
        VerificationTagger.cleanup_existing_tags(project.external_kits_dir)
        logger.debug("Project file loaded from '%s'", filepath)
        return project

    @classmethod
    def find_and_load(cls, directory: Path | str = ".") -> Project:
        """Search ``directory`` and then its parents for ``Twoliter.toml``.

        Raises:
            ProjectError: If ``directory`` is not a directory or no parent
                holds a project file.
        """
        current = Path(directory)
        if not current.is_dir():
            raise ProjectError(f"Unable to locate {TWOLITER_TOML} in '{current}': not a directory")
        current = current.resolve()
        while True:
            logger.debug("Looking for %s in '%s'", TWOLITER_TOML, current)
            candidate = current / TWOLITER_TOML
            if candidate.is_file():
                return cls.load(candidate)
            if current.parent == current:
                raise ProjectError(f"Unable to find {TWOLITER_TOML} file")
            current = current.parent

    # -- Paths --------------------------------------------------------------

    @property
    def project_dir(self) -> Path:
        return self.filepath.parent

    @property
    def lock_file(self) -> Path:
        return self.project_dir / TWOLITER_LOCK

    @property
    def external_kits_dir(self) -> Path:
        return self.project_dir / EXTERNAL_KIT_DIRECTORY

    @property
    def external_kits_metadata(self) -> Path:
        return self.project_dir / EXTERNAL_KIT_METADATA

    # -- Dependencies -------------------------------------------------------

    def direct_kit_deps(self) -> list[Image]:
        return list(self.kit)

    def direct_sdk_image_dep(self) -> ProjectImage | None:
        """The declared SDK bound to its vendor, or None without an SDK."""
        if self.sdk is None:
            return None
        return self.as_project_image(self.sdk)

    def vendor_for(self, artifact: VendedArtifact) -> ArtifactVendor | None:
        """Return the vendor an artifact resolves through, honoring overrides.

        Returns None when the artifact's vendor is not declared.
        """
        vendor = self.vendor.get(artifact.vendor)
        if vendor is None:
            return None
        override = self.overrides.get(artifact.vendor, {}).get(artifact.name)
        if override is None:
            return VerbatimVendor(vendor_name=artifact.vendor, vendor=vendor)
        logger.debug(
            "Found override for image '%s' with vendor '%s': %r",
            artifact.name,
            artifact.vendor,
            override,
        )
        return OverriddenVendor(
            original_vendor_name=artifact.vendor,
            original_vendor=vendor,
            override=override,
        )

    def as_project_image(self, image: Image) -> ProjectImage:
        """Bind ``image`` to its vendor.

        Raises:
            ProjectError: If the image's vendor is not declared.
        """
        vendor = self.vendor_for(image)
        if vendor is None:
            raise ProjectError(f"vendor '{image.vendor}' is not specified in Twoliter.toml")
        return ProjectImage(image=image, vendor=vendor)

    # -- Lock ---------------------------------------------------------------

    async def create_lock(self, image_tool: ImageTool | None = None) -> Lock:
        """Resolve all dependencies and write ``Twoliter.lock``.

        Verification markers are removed first; a new lock has not been
        verified yet.
        """
        from kitlock.core.lock import Lock, VerificationTagger

        VerificationTagger.cleanup_existing_tags(self.external_kits_dir)
        return await Lock.create(self, image_tool)

    async def load_lock(self, image_tool: ImageTool | None = None) -> Lock:
        """Verify ``Twoliter.lock`` and mark the SDK and kits as verified."""
        from kitlock.core.lock import Lock, VerificationTagger

        VerificationTagger.cleanup_existing_tags(self.external_kits_dir)
        resolved_lock = await Lock.load(self, image_tool)
        VerificationTagger.from_verifier(resolved_lock).write_tags(self.external_kits_dir)
        return resolved_lock

    async def load_locked_sdk(self, image_tool: ImageTool | None = None) -> LockedSDK:
        """Verify only the SDK in ``Twoliter.lock`` and mark it as verified."""
        from kitlock.core.lock import LockedSDK, VerificationTagger

        VerificationTagger.cleanup_existing_tags(self.external_kits_dir)
        resolved_sdk = await LockedSDK.load(self, image_tool)
        VerificationTagger.from_verifier(resolved_sdk).write_tags(self.external_kits_dir)
        return resolved_sdk
