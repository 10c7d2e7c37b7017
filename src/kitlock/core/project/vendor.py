"""Vendor resolution for image artifacts used by a project.

An artifact's vendor is either used *verbatim* as declared in
``Twoliter.toml`` or *overridden* by an entry in ``Twoliter.override``.
The two cases form a closed union (``ArtifactVendor``) and every accessor
dispatches on it with a ``match`` statement.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

from kitlock.core.project.models import Image, ImageUri, Override, Vendor


class VendedArtifact(Protocol):
    """Anything identified by an artifact name, a vendor name, and a version."""

    name: str
    version: str
    vendor: str


@dataclass(frozen=True)
class VerbatimVendor:
    """A vendor exactly as written in ``Twoliter.toml``."""

    vendor_name: str
    vendor: Vendor


@dataclass(frozen=True)
class OverriddenVendor:
    """A vendor whose registry and/or repository name is overridden."""

    original_vendor_name: str
    original_vendor: Vendor
    override: Override

    def original(self) -> VerbatimVendor:
        return VerbatimVendor(self.original_vendor_name, self.original_vendor)


ArtifactVendor = Union[VerbatimVendor, OverriddenVendor]


def vendor_registry(vendor: ArtifactVendor) -> str:
    """Return the registry an artifact is fetched from."""
    match vendor:
        case VerbatimVendor(vendor=declared):
            return declared.registry
        case OverriddenVendor(original_vendor=declared, override=override):
            return override.registry or declared.registry
    raise TypeError(f"unsupported artifact vendor: {vendor!r}")


def vendor_repo_for(vendor: ArtifactVendor, artifact: VendedArtifact) -> str:
    """Return the repository name an artifact is fetched from."""
    match vendor:
        case VerbatimVendor():
            return artifact.name
        case OverriddenVendor(override=override):
            return override.name or artifact.name
    raise TypeError(f"unsupported artifact vendor: {vendor!r}")


def vendor_name(vendor: ArtifactVendor) -> str:
    """Return the vendor name as declared in the project."""
    match vendor:
        case VerbatimVendor(vendor_name=name):
            return name
        case OverriddenVendor(original_vendor_name=name):
            return name
    raise TypeError(f"unsupported artifact vendor: {vendor!r}")


def image_uri_for(vendor: ArtifactVendor, artifact: VendedArtifact) -> ImageUri:
    """Build the tag-based image URI (``v<version>``) for an artifact."""
    return ImageUri(
        registry=vendor_registry(vendor),
        repo=vendor_repo_for(vendor, artifact),
        tag=f"v{artifact.version}",
    )


# ---------------------------------------------------------------------------
# ProjectImage: an Image bound to its vendor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectImage:
    """An ``Image`` together with the vendor it resolves through.

    ``project_image_uri`` is where the image is actually fetched from and
    honors overrides. ``original_source_uri`` ignores overrides and is the
    value recorded as ``source`` in the lockfile, so a local override never
    changes the persisted lock.
    """

    image: Image
    vendor: ArtifactVendor

    @property
    def name(self) -> str:
        return self.image.name

    @property
    def version(self) -> str:
        return self.image.version

    @property
    def vendor_name(self) -> str:
        return vendor_name(self.vendor)

    def project_image_uri(self) -> ImageUri:
        return image_uri_for(self.vendor, self.image)

    def original_source_uri(self) -> ImageUri:
        match self.vendor:
            case OverriddenVendor() as overridden:
                return image_uri_for(overridden.original(), self.image)
            case _:
                return image_uri_for(self.vendor, self.image)

    def __str__(self) -> str:
        return str(self.image)
