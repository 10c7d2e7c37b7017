"""Project declarations --- Twoliter.toml, vendors and overrides.

The package is split into focused submodules:

- ``models``: ``Image``, ``Vendor``, ``Override`` and ``ImageUri`` plus
  identifier and version validation.
- ``vendor``: verbatim and overridden artifact vendors and ``ProjectImage``.
- ``project``: the ``Project`` loader and its lock entry points.

All public names are re-exported here.
"""

from kitlock.core.project.models import (
    Image,
    ImageUri,
    Override,
    Vendor,
    validate_identifier,
    validate_version,
)
from kitlock.core.project.vendor import (
    ArtifactVendor,
    OverriddenVendor,
    ProjectImage,
    VendedArtifact,
    VerbatimVendor,
    image_uri_for,
    vendor_name,
    vendor_registry,
    vendor_repo_for,
)
from kitlock.core.project.project import (
    EXTERNAL_KIT_DIRECTORY,
    EXTERNAL_KIT_METADATA,
    TWOLITER_LOCK,
    TWOLITER_OVERRIDES,
    Project,
)

__all__ = [
    "ArtifactVendor",
    "EXTERNAL_KIT_DIRECTORY",
    "EXTERNAL_KIT_METADATA",
    "Image",
    "ImageUri",
    "OverriddenVendor",
    "Override",
    "Project",
    "ProjectImage",
    "TWOLITER_LOCK",
    "TWOLITER_OVERRIDES",
    "VendedArtifact",
    "Vendor",
    "VerbatimVendor",
    "image_uri_for",
    "validate_identifier",
    "validate_version",
    "vendor_name",
    "vendor_registry",
    "vendor_repo_for",
]
