"""Lockfile data models --- LockedImage and ImageMetadata.

Defines the resolved-dependency records persisted in ``Twoliter.lock`` and
the kit metadata decoded from image configurations. These are pure data
holders with no I/O, safe to import from anywhere in the lock package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kitlock.core.project.models import Image, validate_identifier, validate_version
from kitlock.exceptions import LockfileError, MetadataError, ProjectError

_LOCKED_IMAGE_KEYS = ("name", "version", "vendor", "source", "digest")


# ---------------------------------------------------------------------------
# LockedImage: a single resolved dependency
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class LockedImage:
    """A dependency pinned to a content digest.

    Equality and hashing consider only ``source`` and ``digest``: the
    digest is the canonical identity of the artifact and the name, version
    and vendor fields are informational. Two records with the same source
    and digest are the same artifact even if their declared names differ.

    Attributes:
        name: Artifact name.
        version: Declared semantic version.
        vendor: Vendor name as declared in the project.
        source: Tag-based image URI, e.g. ``r.example/acme/core-kit:v1.0.0``.
        digest: Base64 SHA-256 of the canonical manifest list.
    """

    name: str
    version: str
    vendor: str
    source: str
    digest: str

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LockedImage):
            return NotImplemented
        return self.source == other.source and self.digest == other.digest

    def __hash__(self) -> int:
        return hash((self.source, self.digest))

    def __str__(self) -> str:
        return f"{self.name}-{self.version}@{self.vendor} ({self.source})"

    @property
    def identity(self) -> tuple[str, str]:
        return (self.source, self.digest)

    def sort_key(self) -> tuple[str, str, str, str, str]:
        return (self.name, self.vendor, self.version, self.source, self.digest)

    def as_image(self) -> Image:
        return Image(name=self.name, version=self.version, vendor=self.vendor)

    def to_dict(self) -> dict[str, str]:
        return {key: getattr(self, key) for key in _LOCKED_IMAGE_KEYS}

    @classmethod
    def from_dict(cls, data: Any, context: str = "locked image") -> LockedImage:
        """Build a ``LockedImage`` from a lockfile table.

        Raises:
            LockfileError: If a key is missing or a value is invalid.
        """
        if not isinstance(data, dict):
            raise LockfileError(f"{context} must be a table")
        missing = [key for key in _LOCKED_IMAGE_KEYS if key not in data]
        if missing:
            raise LockfileError(f"{context} is missing keys: {', '.join(missing)}")
        try:
            validate_identifier(data["name"], "image name")
            validate_version(data["version"])
            validate_identifier(data["vendor"], "vendor name")
        except ProjectError as exc:
            raise LockfileError(f"{context} is invalid: {exc}") from exc
        for key in ("source", "digest"):
            if not isinstance(data[key], str) or not data[key]:
                raise LockfileError(f"{context} {key} must be a non-empty string")
        return cls(**{key: data[key] for key in _LOCKED_IMAGE_KEYS})


# ---------------------------------------------------------------------------
# ImageMetadata: dependency declaration embedded in a kit image
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImageMetadata:
    """A kit's own requirements, as embedded by the kit's build.

    Attributes:
        name: Kit name.
        version: Kit version.
        sdk: The SDK the kit was built with and requires.
        kits: Kits this kit depends on (JSON key ``kit``).
    """

    name: str
    version: str
    sdk: Image
    kits: list[Image] = field(default_factory=list)

    _KEYS = frozenset({"name", "version", "sdk", "kit"})

    @classmethod
    def from_dict(cls, data: Any) -> ImageMetadata:
        """Build metadata from its decoded JSON form.

        Unknown top-level keys are rejected.

        Raises:
            MetadataError: On missing or unknown keys, or invalid values.
        """
        if not isinstance(data, dict):
            raise MetadataError("kit metadata must be a JSON object")
        unknown = set(data) - cls._KEYS
        if unknown:
            raise MetadataError(f"kit metadata has unknown fields: {sorted(unknown)}")
        missing = sorted(cls._KEYS - set(data))
        if missing:
            raise MetadataError(f"kit metadata is missing fields: {missing}")
        if not isinstance(data["kit"], list):
            raise MetadataError("kit metadata field 'kit' must be a list")
        try:
            return cls(
                name=validate_identifier(data["name"], "kit name"),
                version=validate_version(data["version"]),
                sdk=Image.from_dict(data["sdk"], "kit metadata sdk"),
                kits=[Image.from_dict(kit, "kit metadata kit") for kit in data["kit"]],
            )
        except ProjectError as exc:
            raise MetadataError(f"invalid kit metadata: {exc}") from exc
