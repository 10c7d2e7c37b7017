"""View models of the OCI manifest and index documents the resolver reads.

Only the fields kitlock needs are kept. Parsing is strict about shape and
raises the caller-supplied error class so that registry documents surface
as ``RetrievalError`` and on-disk archive documents as ``ArchiveError``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from kitlock.exceptions import ArchiveError, KitLockError, RetrievalError


@dataclass(frozen=True)
class ManifestView:
    """One entry of a manifest list or OCI index."""

    digest: str
    architecture: str | None = None


@dataclass(frozen=True)
class ManifestListView:
    """A multi-architecture manifest list (or OCI image index)."""

    manifests: list[ManifestView]

    def for_architecture(self, architecture: str) -> ManifestView | None:
        """Return the first entry whose platform matches ``architecture``."""
        for manifest in self.manifests:
            if manifest.architecture == architecture:
                return manifest
        return None


@dataclass(frozen=True)
class LayerView:
    digest: str

    @property
    def blob_path(self) -> str:
        """Relative blob path inside an OCI layout, e.g. ``blobs/sha256/<hex>``."""
        return "blobs/" + self.digest.replace(":", "/")


@dataclass(frozen=True)
class ManifestLayoutView:
    """A single-platform image manifest listing its layers in order."""

    layers: list[LayerView]


def _load(raw: bytes, what: str, error: type[KitLockError]) -> Any:
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise error(f"failed to deserialize {what}: {exc}") from exc


def _parse_manifests(doc: Any, what: str, error: type[KitLockError]) -> list[ManifestView]:
    if not isinstance(doc, dict) or not isinstance(doc.get("manifests"), list):
        raise error(f"failed to deserialize {what}: missing 'manifests' list")
    manifests: list[ManifestView] = []
    for entry in doc["manifests"]:
        if not isinstance(entry, dict) or not isinstance(entry.get("digest"), str):
            raise error(f"failed to deserialize {what}: manifest entry without digest")
        platform = entry.get("platform")
        architecture = None
        if isinstance(platform, dict) and isinstance(platform.get("architecture"), str):
            architecture = platform["architecture"]
        manifests.append(ManifestView(digest=entry["digest"], architecture=architecture))
    return manifests


def parse_manifest_list(raw: bytes, error: type[KitLockError] = RetrievalError) -> ManifestListView:
    """Parse a manifest list fetched from a registry."""
    doc = _load(raw, "manifest list", error)
    return ManifestListView(manifests=_parse_manifests(doc, "manifest list", error))


def parse_index(raw: bytes) -> ManifestListView:
    """Parse the ``index.json`` of an OCI image layout on disk."""
    doc = _load(raw, "oci image index", ArchiveError)
    return ManifestListView(manifests=_parse_manifests(doc, "oci image index", ArchiveError))


def parse_manifest_layout(raw: bytes) -> ManifestLayoutView:
    """Parse an image manifest blob and validate its layer digests.

    Raises:
        ArchiveError: If the document is malformed or a layer digest is not
            a ``sha256:`` digest.
    """
    doc = _load(raw, "oci manifest", ArchiveError)
    if not isinstance(doc, dict) or not isinstance(doc.get("layers"), list):
        raise ArchiveError("failed to deserialize oci manifest: missing 'layers' list")
    layers: list[LayerView] = []
    for layer in doc["layers"]:
        digest = layer.get("digest") if isinstance(layer, dict) else None
        if not isinstance(digest, str) or not digest.startswith("sha256:"):
            raise ArchiveError(f"invalid digest detected in layer: {digest!r}")
        layers.append(LayerView(digest=digest))
    return ManifestLayoutView(layers=layers)
