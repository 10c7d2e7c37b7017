"""Image tool backed by the docker CLI.

Docker can do everything the resolver needs, but less efficiently than
crane: an image must be pulled into the local daemon before its
configuration can be inspected, and OCI archives are produced with
``docker save``. The daemon needs the containerd snapshotter enabled to
emit OCI layouts.
"""

from __future__ import annotations

import json
import tarfile
import tempfile
from pathlib import Path

from kitlock.core.imagetool.base import ConfigView, ImageTool
from kitlock.core.imagetool.cli import CommandLine
from kitlock.exceptions import ImageToolError, RetrievalError


class DockerImageTool(ImageTool):
    """``ImageTool`` implementation using the docker daemon."""

    def __init__(self, cli: CommandLine) -> None:
        self._cli = cli

    @property
    def tool_name(self) -> str:
        return "docker"

    async def pull_oci_image(self, path: Path, uri: str) -> None:
        await self._cli.spawn(
            ["pull", uri], f"failed to pull image to local docker from {uri}"
        )
        with tempfile.TemporaryDirectory(dir=path) as tmp:
            archive = Path(tmp) / "image.tar"
            await self._cli.spawn(
                ["save", uri, "-o", str(archive)],
                f"failed to save image archive from {uri} to {archive}",
            )
            try:
                with tarfile.open(archive) as tar:
                    tar.extractall(path, filter="tar")
            except (OSError, tarfile.TarError) as exc:
                raise ImageToolError(
                    f"failed to extract image archive saved from {uri}: {exc}"
                ) from exc

    async def fetch_manifest(self, uri: str) -> bytes:
        return await self._cli.output(
            ["manifest", "inspect", uri],
            f"failed to inspect manifest of resource at {uri}",
        )

    async def get_config(self, uri: str) -> ConfigView:
        await self._cli.spawn(["pull", uri], f"failed to pull image from {uri}")
        raw = await self._cli.output(
            ["image", "inspect", uri, "--format", "{{ json .Config }}"],
            f"failed to fetch image config from {uri}",
        )
        try:
            config = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            raise RetrievalError(
                f"failed to deserialize image config from {uri}: {exc}"
            ) from exc
        return ConfigView.from_config(config, uri)
