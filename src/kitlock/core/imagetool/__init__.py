"""Container image tools used to query registries and pull kit images.

Two tools are supported:

- ``crane`` / ``gcrane`` / ``krane``: query the registry directly, no
  daemon required, optimized for pulling large images.
- ``docker``: needs the daemon (with the containerd snapshotter for OCI
  layouts) and must pull an image before inspecting it.

Public API::

    from kitlock.core.imagetool import ImageTool, image_tool_from_environment
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from kitlock.core.imagetool.base import ConfigView, DockerArchitecture, ImageTool
from kitlock.core.imagetool.cli import CommandLine
from kitlock.core.imagetool.crane import CraneImageTool
from kitlock.core.imagetool.docker import DockerImageTool
from kitlock.exceptions import ImageToolError

logger = logging.getLogger(__name__)

# Environment variable naming the image tool to use.
IMAGE_TOOL_ENV_VAR = "TWOLITER_KIT_IMAGE_TOOL"

_CRANE_TOOLS = ("krane", "gcrane", "crane")


def _which(name: str) -> Path:
    found = shutil.which(name)
    if found is None:
        raise ImageToolError(
            f"Unable to find a container image tool by name {name!r} in current environment"
        )
    return Path(found)


def image_tool_from_name(name: str) -> ImageTool:
    """Return the image tool with the given executable name.

    Raises:
        ImageToolError: If the tool is unsupported or not on ``PATH``.
    """
    if name == "docker":
        return DockerImageTool(CommandLine(_which(name)))
    if name in _CRANE_TOOLS:
        return CraneImageTool(CommandLine(_which(name)), name=name)
    raise ImageToolError(f"Unsupported container image tool {name!r}")


def image_tool_from_environment() -> ImageTool:
    """Select the image tool from ``TWOLITER_KIT_IMAGE_TOOL`` or ``PATH``.

    When the environment variable is unset, the first crane-family tool on
    ``PATH`` is used, falling back to docker.

    Raises:
        ImageToolError: If no supported tool can be found.
    """
    name = os.environ.get(IMAGE_TOOL_ENV_VAR)
    if name:
        logger.debug("Using image tool %r from %s", name, IMAGE_TOOL_ENV_VAR)
        return image_tool_from_name(name)
    for candidate in _CRANE_TOOLS:
        path = shutil.which(candidate)
        if path is not None:
            return CraneImageTool(CommandLine(Path(path)), name=candidate)
    path = shutil.which("docker")
    if path is None:
        raise ImageToolError(
            "Unable to find any supported container image tool, please install docker or crane"
        )
    return DockerImageTool(CommandLine(Path(path)))


__all__ = [
    "CommandLine",
    "ConfigView",
    "CraneImageTool",
    "DockerArchitecture",
    "DockerImageTool",
    "IMAGE_TOOL_ENV_VAR",
    "ImageTool",
    "image_tool_from_environment",
    "image_tool_from_name",
]
