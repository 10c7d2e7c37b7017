"""Base classes and data models for container image tools.

Defines the ``ImageTool`` abstract base class that the concrete command
line wrappers (crane-family and docker) implement, along with the
``ConfigView`` and ``DockerArchitecture`` models shared with the resolver.
Registry protocols are never spoken directly; every interaction goes
through an external tool.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from kitlock.canonical import canonical_json_bytes
from kitlock.exceptions import InvalidArchitectureError, RetrievalError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


class DockerArchitecture(Enum):
    """Image platform architectures that kits are published for."""

    AMD64 = "amd64"
    ARM64 = "arm64"

    @classmethod
    def parse(cls, value: str) -> DockerArchitecture:
        """Map a build or image architecture name to a platform.

        Accepts both the kernel names (``x86_64``, ``aarch64``) used by
        builds and the image platform names (``amd64``, ``arm64``).

        Raises:
            InvalidArchitectureError: For any other value.
        """
        aliases = {
            "x86_64": cls.AMD64,
            "amd64": cls.AMD64,
            "aarch64": cls.ARM64,
            "arm64": cls.ARM64,
        }
        try:
            return aliases[value]
        except KeyError:
            raise InvalidArchitectureError(f"invalid architecture {value!r}") from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ConfigView:
    """The part of an image configuration the resolver reads.

    Attributes:
        labels: Configuration labels. Images without labels yield ``{}``.
    """

    labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: Any, uri: str) -> ConfigView:
        """Build a view from a decoded ``Config`` object.

        Raises:
            RetrievalError: If the configuration is not a JSON object or its
                labels are not a string-to-string mapping.
        """
        if not isinstance(config, dict):
            raise RetrievalError(f"image config from {uri} is not a JSON object")
        labels = config.get("Labels") or {}
        if not isinstance(labels, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in labels.items()
        ):
            raise RetrievalError(f"image config from {uri} has malformed labels")
        return cls(labels=dict(labels))


# ---------------------------------------------------------------------------
# Abstract base image tool
# ---------------------------------------------------------------------------


class ImageTool(ABC):
    """Abstract base class for container image tools.

    Subclasses implement ``pull_oci_image``, ``get_config`` and
    ``fetch_manifest``. The ``get_manifest`` method wraps
    ``fetch_manifest`` and canonicalizes the manifest JSON so that digests
    computed from it do not depend on how a registry formats its output.
    """

    @property
    @abstractmethod
    def tool_name(self) -> str:
        """Human-readable name of the tool (e.g. 'crane')."""

    @abstractmethod
    async def pull_oci_image(self, path: Path, uri: str) -> None:
        """Pull the image at ``uri`` and save it as an OCI layout in ``path``."""

    @abstractmethod
    async def get_config(self, uri: str) -> ConfigView:
        """Fetch the decoded image configuration of a single-platform image."""

    @abstractmethod
    async def fetch_manifest(self, uri: str) -> bytes:
        """Fetch the raw manifest (or manifest list) bytes for ``uri``."""

    async def get_manifest(self, uri: str) -> bytes:
        """Fetch the manifest at ``uri`` re-encoded as canonical JSON.

        Raises:
            RetrievalError: If the manifest is not valid JSON.
        """
        raw = await self.fetch_manifest(uri)
        try:
            manifest = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            raise RetrievalError(
                f"failed to deserialize image manifest from {uri}: {exc}"
            ) from exc
        logger.debug("Fetched manifest for '%s' with %s", uri, self.tool_name)
        return canonical_json_bytes(manifest)
