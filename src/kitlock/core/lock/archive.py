"""Content-addressed cache of pulled OCI image archives.

An ``OCIArchive`` pulls a single-platform image into an OCI layout under
the cache directory and unpacks its filesystem layers into a target
directory. A ``digest`` marker file in the target records what was
unpacked, so fetching an unchanged kit twice does no work.

Archives come either from a registry (keyed by the platform manifest
digest) or from a locally built kit, whose ``build/kits/<name>`` output
holds one OCI tarball per architecture.
"""

from __future__ import annotations

import logging
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from kitlock.core.imagetool import ImageTool
from kitlock.core.lock.views import parse_index, parse_manifest_layout
from kitlock.exceptions import ArchiveError

logger = logging.getLogger(__name__)

# Marker file recording the digest unpacked into a target directory.
DIGEST_MARKER = "digest"


@dataclass(frozen=True)
class RegistrySource:
    """A platform image in a registry, addressed by manifest digest."""

    registry: str
    repository: str
    digest: str

    @property
    def uri(self) -> str:
        return f"{self.registry}/{self.repository}@{self.digest}"


@dataclass(frozen=True)
class LocalSource:
    """A kit built in a local project directory."""

    path: Path
    name: str
    version: str
    vendor: str

    @property
    def uri(self) -> str:
        return f"file://{self.path}#{self.name}"


ArchiveSource = Union[RegistrySource, LocalSource]


def _untar(archive_file: Path, destination: Path, what: str) -> None:
    try:
        with tarfile.open(archive_file, "r:*") as archive:
            archive.extractall(destination, filter="tar")
    except (OSError, tarfile.TarError) as exc:
        raise ArchiveError(f"failed to unpack {what} from {archive_file}: {exc}") from exc


def _find_local_archive(project_dir: Path, name: str, arch: str) -> Path | None:
    build_dir = project_dir / "build" / "kits" / name
    if not build_dir.is_dir():
        return None
    suffix = f"{arch}.tar"
    for candidate in sorted(build_dir.rglob("*")):
        if candidate.is_file() and candidate.name.endswith(suffix):
            return candidate
    return None


@dataclass(frozen=True)
class OCIArchive:
    """A cached OCI layout for one image on one architecture.

    Attributes:
        source: Where the image comes from.
        cache_dir: Directory holding OCI layouts, one per archive.
    """

    source: ArchiveSource
    cache_dir: Path

    @property
    def uri(self) -> str:
        return self.source.uri

    @property
    def archive_path(self) -> Path:
        """Cache location of the OCI layout.

        Registry archives live at the digest with ``:`` replaced by ``-``.
        Local archives use ``<name>-<version>-<vendor>-override``.
        """
        match self.source:
            case RegistrySource(digest=digest):
                return self.cache_dir / digest.replace(":", "-")
            case LocalSource(name=name, version=version, vendor=vendor):
                return self.cache_dir / f"{name}-{version}-{vendor}-override"
        raise TypeError(f"unsupported archive source: {self.source!r}")

    async def pull_image(self, image_tool: ImageTool, arch: str) -> None:
        """Populate the cached OCI layout.

        A registry archive is pulled only when its cache directory is
        absent. A local archive is always re-extracted, into an emptied cache
        directory, from the first matching build output in name order.

        Raises:
            ArchiveError: If no local build output exists for ``arch``, or
                the cache cannot be written.
        """
        archive_path = self.archive_path
        match self.source:
            case RegistrySource():
                if archive_path.exists():
                    logger.debug("Image from '%s' already present, no need to pull", self.uri)
                    return
                logger.debug("Pulling image '%s'", self.uri)
                try:
                    archive_path.mkdir(parents=True, exist_ok=True)
                except OSError as exc:
                    raise ArchiveError(f"failed to create {archive_path}: {exc}") from exc
                try:
                    await image_tool.pull_oci_image(archive_path, self.uri)
                except BaseException:
                    # An empty cache entry would be mistaken for a complete pull.
                    shutil.rmtree(archive_path, ignore_errors=True)
                    raise
            case LocalSource(path=path, name=name):
                found = _find_local_archive(path, name, arch)
                if found is None:
                    raise ArchiveError(
                        f"No oci image archive was found in {path}. Have you built the kit?"
                    )
                logger.debug("Using locally built kit archive '%s'", found)
                shutil.rmtree(archive_path, ignore_errors=True)
                _untar(found, archive_path, "oci archive")

    def unpack_layers(self, out_dir: Path) -> None:
        """Unpack the image layers, in order, into ``out_dir``.

        Skipped when ``out_dir`` holds a digest marker equal to the registry
        digest. Otherwise ``out_dir`` is wiped, every layer listed by the
        first manifest of ``index.json`` is extracted over it, and the
        marker is written. Local archives never write a marker, so they are
        always re-unpacked.

        Raises:
            ArchiveError: If the layout is missing, malformed, or a layer
                cannot be unpacked.
        """
        digest_file = out_dir / DIGEST_MARKER
        if isinstance(self.source, RegistrySource) and digest_file.is_file():
            try:
                on_disk = digest_file.read_text(encoding="utf-8")
            except OSError as exc:
                raise ArchiveError(f"failed to read digest file at {digest_file}: {exc}") from exc
            if on_disk == self.source.digest:
                logger.debug(
                    "Found existing digest file for image from '%s' at '%s'",
                    self.uri,
                    digest_file,
                )
                return

        logger.debug("Unpacking layers for image from '%s'", self.uri)
        try:
            if out_dir.exists():
                shutil.rmtree(out_dir)
            out_dir.mkdir(parents=True)
            index_bytes = (self.archive_path / "index.json").read_bytes()
        except OSError as exc:
            raise ArchiveError(f"failed to prepare {out_dir} from {self.archive_path}: {exc}") from exc

        index = parse_index(index_bytes)
        if not index.manifests:
            raise ArchiveError(f"empty oci image at {self.archive_path}")
        manifest_blob = self.archive_path / ("blobs/" + index.manifests[0].digest.replace(":", "/"))
        try:
            manifest_bytes = manifest_blob.read_bytes()
        except OSError as exc:
            raise ArchiveError(f"failed to read manifest blob {manifest_blob}: {exc}") from exc

        for layer in parse_manifest_layout(manifest_bytes).layers:
            _untar(self.archive_path / layer.blob_path, out_dir, "image layer")

        if isinstance(self.source, RegistrySource):
            try:
                digest_file.write_text(self.source.digest, encoding="utf-8")
            except OSError as exc:
                raise ArchiveError(f"failed to record digest to {digest_file}: {exc}") from exc
