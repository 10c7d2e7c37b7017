"""Declared-dependency data types for a kitlock project.

These are the values read out of ``Twoliter.toml`` and out of the metadata
embedded in kit images: dependency *intents* (``Image``), the registries
they are published under (``Vendor``), and local substitutions
(``Override``). They are pure, immutable data holders with validation in
``__post_init__`` and no I/O.

Identifier and version grammar
------------------------------
Identifiers (artifact and vendor names) are non-empty and limited to ASCII
letters, digits, ``_`` and ``-``. Versions follow Semantic Versioning 2.0.0.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from kitlock.exceptions import ProjectError

# ---------------------------------------------------------------------------
# Identifier and version validation
# ---------------------------------------------------------------------------

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_-]+$")

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z\-.]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-.]+))?$"
)


def validate_identifier(value: Any, field_name: str = "identifier") -> str:
    """Validate an artifact or vendor identifier.

    Args:
        value: Candidate identifier.
        field_name: Name used in the error message.

    Returns:
        The identifier, unchanged.

    Raises:
        ProjectError: If the value is not a string, is empty, or contains a
            character outside ``[A-Za-z0-9_-]``.
    """
    if not isinstance(value, str):
        raise ProjectError(f"{field_name} must be a string, got {value!r}")
    if not value:
        raise ProjectError(f"cannot define {field_name} as an empty string")
    if not _IDENTIFIER_RE.match(value):
        bad = next(c for c in value if not (c.isascii() and (c.isalnum() or c in "_-")))
        raise ProjectError(
            f"invalid character {bad!r} found in {field_name} {value!r}"
        )
    return value


def validate_version(value: Any) -> str:
    """Validate a semantic version string and return it unchanged.

    Raises:
        ProjectError: If the value is not a valid semantic version.
    """
    if not isinstance(value, str) or not _SEMVER_RE.match(value):
        raise ProjectError(f"invalid semantic version: {value!r}")
    return value


def _require(data: dict[str, Any], key: str, context: str) -> Any:
    if not isinstance(data, dict):
        raise ProjectError(f"{context} must be a table, got {type(data).__name__}")
    if key not in data:
        raise ProjectError(f"{context} is missing required key {key!r}")
    return data[key]


# ---------------------------------------------------------------------------
# Image: a declared dependency on a kit or SDK image
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Image:
    """A dependency on a versioned image published by a vendor.

    Two images are the same dependency only if all three fields match, so
    SDK sets built from ``Image`` values treat a different version or a
    different vendor as a distinct SDK.

    Attributes:
        name: Artifact name, e.g. ``"core-kit"``.
        version: Semantic version, e.g. ``"1.0.0"``.
        vendor: Name of the vendor declared in the project.
    """

    name: str
    version: str
    vendor: str

    def __post_init__(self) -> None:
        validate_identifier(self.name, "image name")
        validate_version(self.version)
        validate_identifier(self.vendor, "vendor name")

    def __str__(self) -> str:
        return f"{self.name}-{self.version}@{self.vendor}"

    @classmethod
    def from_dict(cls, data: dict[str, Any], context: str = "image") -> Image:
        """Build an ``Image`` from a ``{name, version, vendor}`` mapping."""
        return cls(
            name=_require(data, "name", context),
            version=_require(data, "version", context),
            vendor=_require(data, "vendor", context),
        )

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "version": self.version, "vendor": self.vendor}


# ---------------------------------------------------------------------------
# Vendor and Override
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Vendor:
    """A container registry location that kits and SDKs are published under."""

    registry: str

    @classmethod
    def from_dict(cls, data: dict[str, Any], context: str = "vendor") -> Vendor:
        registry = _require(data, "registry", context)
        if not isinstance(registry, str) or not registry:
            raise ProjectError(f"{context} registry must be a non-empty string")
        return cls(registry=registry)


@dataclass(frozen=True)
class Override:
    """A local substitution of an artifact's registry and/or repository name.

    Read from ``Twoliter.override``. An override changes where an artifact
    is fetched from, never which version is required.
    """

    name: str | None = None
    registry: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], context: str = "override") -> Override:
        if not isinstance(data, dict):
            raise ProjectError(f"{context} must be a table")
        unknown = set(data) - {"name", "registry"}
        if unknown:
            raise ProjectError(f"{context} has unknown keys: {sorted(unknown)}")
        name = data.get("name")
        registry = data.get("registry")
        for key, value in (("name", name), ("registry", registry)):
            if value is not None and not isinstance(value, str):
                raise ProjectError(f"{context} {key} must be a string")
        return cls(name=name, registry=registry)


# ---------------------------------------------------------------------------
# ImageUri
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImageUri:
    """An image reference such as ``public.ecr.aws/vendor/my-kit:v1.0.0``."""

    registry: str | None
    repo: str
    tag: str

    @property
    def uri(self) -> str:
        if self.registry is None:
            return f"{self.repo}:{self.tag}"
        return f"{self.registry}/{self.repo}:{self.tag}"

    def digest_uri(self, digest: str) -> str:
        """Return the digest-qualified reference ``registry/repo@digest``."""
        if self.registry is None:
            return f"{self.repo}@{digest}"
        return f"{self.registry}/{self.repo}@{digest}"

    def __str__(self) -> str:
        return self.uri
