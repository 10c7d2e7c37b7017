"""Image tool backed by ``crane`` (or ``gcrane`` / ``krane``).

Crane talks to the registry directly: manifests and configurations are
queried without pulling the image, and no daemon is needed.
"""

from __future__ import annotations

import json
from pathlib import Path

from kitlock.core.imagetool.base import ConfigView, ImageTool
from kitlock.core.imagetool.cli import CommandLine
from kitlock.exceptions import RetrievalError


class CraneImageTool(ImageTool):
    """``ImageTool`` implementation using the crane command-line family."""

    def __init__(self, cli: CommandLine, name: str = "crane") -> None:
        self._cli = cli
        self._name = name

    @property
    def tool_name(self) -> str:
        return self._name

    async def pull_oci_image(self, path: Path, uri: str) -> None:
        await self._cli.spawn(
            ["pull", "--format", "oci", uri, str(path)],
            f"failed to pull image archive from {uri}",
        )

    async def fetch_manifest(self, uri: str) -> bytes:
        return await self._cli.output(
            ["manifest", uri],
            f"failed to fetch manifest for resource at {uri}",
        )

    async def get_config(self, uri: str) -> ConfigView:
        raw = await self._cli.output(
            ["config", uri],
            f"failed to fetch image config from {uri}",
        )
        try:
            image = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            raise RetrievalError(
                f"failed to deserialize image config from {uri}: {exc}"
            ) from exc
        if not isinstance(image, dict) or "config" not in image:
            raise RetrievalError(f"image config from {uri} has no 'config' section")
        return ConfigView.from_config(image["config"], uri)
