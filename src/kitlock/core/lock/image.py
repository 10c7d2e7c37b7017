"""Resolution and extraction of a single image dependency.

``ImageResolver`` turns one ``ProjectImage`` into a ``LockedImage`` pinned
by digest and, for kits, the ``ImageMetadata`` embedded in the image. It
also materializes a resolved kit for one architecture into the
external-kits directory through the ``OCIArchive`` cache.

Digest
------
The pinned digest is the base64-encoded SHA-256 of the canonical JSON of
the manifest list fetched at the tag-based URI. The lock keeps both the
tag URI (``source``) and this digest: a tag can move, and the digest is
what catches it.
"""

from __future__ import annotations

import base64
import dataclasses
import hashlib
import logging
from pathlib import Path

from kitlock.core.imagetool import DockerArchitecture, ImageTool
from kitlock.core.lock.archive import LocalSource, OCIArchive, RegistrySource
from kitlock.core.lock.metadata import EncodedKitMetadata
from kitlock.core.lock.models import ImageMetadata, LockedImage
from kitlock.core.lock.views import ManifestListView, parse_manifest_list
from kitlock.core.project.vendor import ProjectImage
from kitlock.exceptions import ArchiveError, MetadataError, RetrievalError

logger = logging.getLogger(__name__)


def compute_digest(manifest_bytes: bytes) -> str:
    """Return the base64-encoded SHA-256 of manifest bytes."""
    return base64.b64encode(hashlib.sha256(manifest_bytes).digest()).decode("ascii")


@dataclasses.dataclass(frozen=True)
class ImageResolver:
    """Resolves one declared image dependency.

    Attributes:
        image: The dependency with its (possibly overridden) vendor.
        skip_metadata_retrieval: When True, ``resolve`` does not read kit
            metadata. SDK images carry none.
    """

    image: ProjectImage
    skip_metadata_retrieval: bool = False

    def skip_metadata(self) -> ImageResolver:
        """Return a resolver that does not retrieve kit metadata."""
        return dataclasses.replace(self, skip_metadata_retrieval=True)

    async def _fetch_manifest_list(self, image_tool: ImageTool) -> tuple[bytes, ManifestListView]:
        uri = str(self.image.project_image_uri())
        logger.debug("Fetching image manifest for '%s' from '%s'", self.image, uri)
        manifest_bytes = await image_tool.get_manifest(uri)
        try:
            return manifest_bytes, parse_manifest_list(manifest_bytes)
        except RetrievalError as exc:
            raise RetrievalError(f"{exc} (fetched from {uri})") from exc

    async def resolve(
        self, image_tool: ImageTool
    ) -> tuple[LockedImage, ImageMetadata | None]:
        """Pin the image to a digest and read its metadata.

        Returns:
            The ``LockedImage`` and, unless metadata retrieval is skipped,
            the kit's decoded ``ImageMetadata``.

        Raises:
            RetrievalError: If the manifest list cannot be fetched or parsed.
            MetadataError: If the image has no usable metadata, or its
                platform images disagree about it.
        """
        uri = self.image.project_image_uri()
        logger.info("Resolving dependency image '%s'", self.image)

        manifest_bytes, manifest_list = await self._fetch_manifest_list(image_tool)
        digest = compute_digest(manifest_bytes)
        logger.debug("Calculated digest for locked image '%s': '%s'", uri, digest)

        locked_image = LockedImage(
            name=self.image.name,
            version=self.image.version,
            vendor=self.image.vendor_name,
            source=str(self.image.original_source_uri()),
            digest=digest,
        )

        if self.skip_metadata_retrieval:
            return locked_image, None

        if not manifest_list.manifests:
            raise MetadataError(f"could not find metadata for kit {uri}")

        canonical: EncodedKitMetadata | None = None
        for manifest in manifest_list.manifests:
            kit_metadata = await EncodedKitMetadata.from_image(
                uri.digest_uri(manifest.digest), image_tool
            )
            if canonical is None:
                canonical = kit_metadata
            elif kit_metadata != canonical:
                logger.error(
                    "Mismatched kit metadata in manifest list of '%s': %s != %s",
                    uri,
                    canonical.describe(),
                    kit_metadata.describe(),
                )
                raise MetadataError(
                    f"Metadata does not match between images in manifest list of {uri}"
                )

        return locked_image, canonical.decode()

    async def extract(
        self,
        image_tool: ImageTool,
        path: Path,
        arch: str,
        local_override: Path | None = None,
    ) -> None:
        """Unpack this image for ``arch`` into ``path/<vendor>/<name>/<arch>``.

        The pulled archive is cached under ``path/cache`` keyed by the
        platform manifest digest, and unpacking is skipped when the target
        already holds that digest.

        Args:
            image_tool: Tool used to query and pull images.
            path: The external-kits directory.
            arch: Build architecture, e.g. ``x86_64``.
            local_override: Project directory of a locally built kit to use
                instead of the registry image.

        Raises:
            RetrievalError: If no image exists for the architecture.
            ArchiveError: If pulling or unpacking fails.
        """
        logger.info("Extracting kit '%s' to '%s'", self.image.name, path)
        target_path = path / self.image.vendor_name / self.image.name / arch
        cache_path = path / "cache"
        try:
            target_path.mkdir(parents=True, exist_ok=True)
            cache_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArchiveError(f"failed to create kit directories under {path}: {exc}") from exc

        uri = self.image.project_image_uri()
        docker_arch = DockerArchitecture.parse(arch)

        if local_override is not None:
            source = LocalSource(
                path=local_override,
                name=self.image.name,
                version=self.image.version,
                vendor=self.image.vendor_name,
            )
        else:
            _, manifest_list = await self._fetch_manifest_list(image_tool)
            manifest = manifest_list.for_architecture(docker_arch.value)
            if manifest is None:
                raise RetrievalError(
                    f"could not find image for architecture '{docker_arch}' at {uri}"
                )
            source = RegistrySource(
                registry=uri.registry or "",
                repository=uri.repo,
                digest=manifest.digest,
            )

        oci_archive = OCIArchive(source=source, cache_dir=cache_path)
        await oci_archive.pull_image(image_tool, arch)
        oci_archive.unpack_layers(target_path)
