"""Shared test helpers: an in-memory image tool and project builders.

``FakeImageTool`` plays the role of a registry reached through crane. Kits
and SDKs are "published" into it with ``publish_kit`` / ``publish_sdk``,
which create the manifest list, per-platform configurations carrying kit
metadata labels, and pullable OCI layouts.
"""

from __future__ import annotations

import base64
import hashlib
import io
import json
import tarfile
from pathlib import Path

import tomli_w

from kitlock.compatibility import supported_kit_metadata_label
from kitlock.core.imagetool import ConfigView, ImageTool
from kitlock.core.project import Image
from kitlock.exceptions import RetrievalError

REGISTRY = "r.example/acme"
ARCHITECTURES = ("amd64", "arm64")

MY_SDK = Image(name="my-sdk", version="2.0.0", vendor="acme")
CORE_KIT = Image(name="core-kit", version="1.0.0", vendor="acme")


# ---------------------------------------------------------------------------
# OCI layout construction
# ---------------------------------------------------------------------------


def make_layer(files: dict[str, bytes], compress: bool = False) -> bytes:
    """Build a tar layer containing ``files`` (path -> content)."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz" if compress else "w") as tar:
        for name, content in sorted(files.items()):
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def _write_blob(layout: Path, content: bytes) -> str:
    hexdigest = hashlib.sha256(content).hexdigest()
    blob = layout / "blobs" / "sha256" / hexdigest
    blob.parent.mkdir(parents=True, exist_ok=True)
    blob.write_bytes(content)
    return f"sha256:{hexdigest}"


def write_oci_layout(layout: Path, layers: list[bytes]) -> None:
    """Write an OCI image layout whose single manifest lists ``layers``."""
    layout.mkdir(parents=True, exist_ok=True)
    layer_digests = [_write_blob(layout, layer) for layer in layers]
    manifest = json.dumps(
        {
            "schemaVersion": 2,
            "layers": [{"digest": digest} for digest in layer_digests],
        }
    ).encode()
    manifest_digest = _write_blob(layout, manifest)
    index = {"schemaVersion": 2, "manifests": [{"digest": manifest_digest}]}
    (layout / "index.json").write_text(json.dumps(index))
    (layout / "oci-layout").write_text('{"imageLayoutVersion":"1.0.0"}')


def write_oci_tarball(path: Path, layers: list[bytes], staging: Path) -> None:
    """Write an OCI layout as a tarball, like a local kit build produces."""
    write_oci_layout(staging, layers)
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w") as tar:
        for child in sorted(staging.iterdir()):
            tar.add(child, arcname=child.name)


def encode_metadata(name: str, version: str, sdk: Image, kits: list[Image]) -> str:
    payload = {
        "name": name,
        "version": version,
        "sdk": sdk.to_dict(),
        "kit": [kit.to_dict() for kit in kits],
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


# ---------------------------------------------------------------------------
# FakeImageTool
# ---------------------------------------------------------------------------


class FakeImageTool(ImageTool):
    """In-memory registry implementing the ``ImageTool`` contract."""

    def __init__(self) -> None:
        self.manifests: dict[str, bytes] = {}
        self.configs: dict[str, dict[str, str]] = {}
        self.layouts: dict[str, list[bytes]] = {}
        self.pulls: list[str] = []
        self.manifest_requests: list[str] = []

    @property
    def tool_name(self) -> str:
        return "fake"

    async def pull_oci_image(self, path: Path, uri: str) -> None:
        self.pulls.append(uri)
        if uri not in self.layouts:
            raise RetrievalError(f"failed to pull image archive from {uri}")
        write_oci_layout(path, self.layouts[uri])

    async def fetch_manifest(self, uri: str) -> bytes:
        self.manifest_requests.append(uri)
        if uri not in self.manifests:
            raise RetrievalError(f"failed to fetch manifest for resource at {uri}")
        return self.manifests[uri]

    async def get_config(self, uri: str) -> ConfigView:
        if uri not in self.configs:
            raise RetrievalError(f"failed to fetch image config from {uri}")
        return ConfigView(labels=dict(self.configs[uri]))

    # -- Publishing ---------------------------------------------------------

    def _publish(
        self,
        name: str,
        version: str,
        labels: dict[str, str],
        registry: str,
        files: dict[str, bytes] | None,
        architectures: tuple[str, ...],
        repo: str | None,
        salt: str,
    ) -> dict[str, str]:
        repo = repo or name
        digests: dict[str, str] = {}
        entries = []
        for arch in architectures:
            seed = f"{registry}/{repo}:{version}:{arch}:{salt}".encode()
            digest = "sha256:" + hashlib.sha256(seed).hexdigest()
            digests[arch] = digest
            entries.append({"digest": digest, "platform": {"architecture": arch, "os": "linux"}})
            self.configs[f"{registry}/{repo}@{digest}"] = dict(labels)
            layer_files = files or {f"{name}/{arch}/README": f"{name} {version}".encode()}
            self.layouts[f"{registry}/{repo}@{digest}"] = [make_layer(layer_files)]
        manifest_list = {"schemaVersion": 2, "manifests": entries}
        # Deliberately non-canonical formatting: digests must not depend on it.
        self.manifests[f"{registry}/{repo}:v{version}"] = json.dumps(manifest_list, indent=4).encode()
        return digests

    def publish_kit(
        self,
        name: str,
        version: str,
        sdk: Image,
        kits: list[Image] | None = None,
        registry: str = REGISTRY,
        files: dict[str, bytes] | None = None,
        architectures: tuple[str, ...] = ARCHITECTURES,
        repo: str | None = None,
        salt: str = "",
    ) -> dict[str, str]:
        """Publish a kit image; returns platform digests by architecture."""
        labels = {supported_kit_metadata_label(): encode_metadata(name, version, sdk, kits or [])}
        return self._publish(name, version, labels, registry, files, architectures, repo, salt)

    def publish_sdk(
        self,
        name: str,
        version: str,
        registry: str = REGISTRY,
        salt: str = "",
    ) -> dict[str, str]:
        """Publish an SDK image (no kit metadata)."""
        return self._publish(name, version, {}, registry, None, ARCHITECTURES, None, salt)


# ---------------------------------------------------------------------------
# Project files
# ---------------------------------------------------------------------------


def write_project(
    project_dir: Path,
    kits: list[Image] | None = None,
    sdk: Image | None = None,
    vendors: dict[str, str] | None = None,
    release_version: str = "1.0.0",
) -> Path:
    """Write ``Twoliter.toml`` and return its path."""
    data: dict[str, object] = {
        "schema-version": 1,
        "release-version": release_version,
        "vendor": {
            name: {"registry": registry}
            for name, registry in (vendors or {"acme": REGISTRY}).items()
        },
    }
    if sdk is not None:
        data["sdk"] = sdk.to_dict()
    if kits:
        data["kit"] = [kit.to_dict() for kit in kits]
    project_dir.mkdir(parents=True, exist_ok=True)
    path = project_dir / "Twoliter.toml"
    path.write_text(tomli_w.dumps(data))
    return path
