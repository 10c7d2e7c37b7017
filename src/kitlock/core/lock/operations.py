"""Lock operations --- create, load, fetch, and metadata synchronization.

This module extends the ``Lock`` class (defined in ``lockfile.py``) with:

- **Persistence:** ``create`` resolves and writes ``Twoliter.lock``;
  ``current_lock_state`` reads it back.
- **Verification:** ``load`` re-resolves the live project and registry
  state and refuses a lock that no longer matches it.
- **Fetching:** ``fetch`` unpacks every locked kit for one architecture
  and writes the external kit metadata consumed by package builds.

These are attached to the ``Lock`` class at import time (in
``__init__.py``).
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kitlock.core.imagetool import ImageTool, image_tool_from_environment
from kitlock.core.lock.image import ImageResolver
from kitlock.exceptions import LockDriftError, LockfileError

if TYPE_CHECKING:
    from kitlock.core.project.project import Project

logger = logging.getLogger(__name__)


async def _create(cls: type, project: Project, image_tool: ImageTool | None = None) -> Any:
    """Resolve the project and write a fresh ``Twoliter.lock``.

    The file is written only after the whole graph resolved, so a failed
    resolution never leaves a partial lock behind.

    Returns:
        The new ``Lock``.

    Raises:
        LockfileError: If the lockfile cannot be written.
    """
    lock_file_path = project.lock_file
    logger.info("Resolving project references to create lock file")
    lock_state = await cls.resolve(project, image_tool)

    logger.debug("Writing new lock file to '%s'", lock_file_path)
    try:
        lock_file_path.write_text(lock_state.to_toml(), encoding="utf-8")
    except OSError as exc:
        raise LockfileError(f"failed to write lock file {lock_file_path}: {exc}") from exc
    return lock_state


def _current_lock_state(cls: type, project: Project) -> Any:
    """Read ``Twoliter.lock`` as it is on disk, without verifying it.

    Raises:
        LockfileError: If the file is missing, unreadable, or malformed.
    """
    lock_file_path = project.lock_file
    if not lock_file_path.exists():
        raise LockfileError("Twoliter.lock does not exist, please run `kitlock update` first")
    logger.debug("Loading existing lockfile '%s'", lock_file_path)
    try:
        with lock_file_path.open("rb") as handle:
            data = tomllib.load(handle)
    except OSError as exc:
        raise LockfileError(f"failed to read lockfile {lock_file_path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise LockfileError(f"failed to deserialize lockfile {lock_file_path}: {exc}") from exc
    return cls.from_dict(data)


async def _load(cls: type, project: Project, image_tool: ImageTool | None = None) -> Any:
    """Return the persisted lock after checking it against a fresh resolution.

    Raises:
        LockfileError: If the lockfile is missing or malformed.
        LockDriftError: If the project or the remote images changed since
            the lock was written.
    """
    lock = cls.current_lock_state(project)
    logger.info("Resolving project references to check against lock file")
    lock_state = await cls.resolve(project, image_tool)

    if lock_state != lock:
        logger.error(
            "Resolved lock does not match Twoliter.lock (locked sdk %s, resolved sdk %s)",
            lock.sdk,
            lock_state.sdk,
        )
        raise LockDriftError(
            "changes have occured to Twoliter.toml or the remote kit images that "
            "require an update to Twoliter.lock"
        )
    return lock


async def _fetch(
    self: Any,
    project: Project,
    arch: str,
    image_tool: ImageTool | None = None,
    kit_overrides: dict[str, Path] | None = None,
) -> None:
    """Unpack every locked kit for ``arch`` into the external-kits directory.

    Args:
        project: The loaded project.
        arch: Build architecture, e.g. ``x86_64`` or ``aarch64``.
        image_tool: Tool used to pull images. Selected from the environment
            when omitted.
        kit_overrides: Kit name to local project directory. Those kits are
            taken from the local build output instead of the registry.

    Raises:
        LockfileError: If the external-kits directory cannot be created.
        ProjectError: If a locked kit names a vendor the project lacks.
        RetrievalError: If a kit image cannot be found for ``arch``.
        ArchiveError: If a kit cannot be pulled or unpacked.
    """
    if image_tool is None:
        image_tool = image_tool_from_environment()
    kit_overrides = kit_overrides or {}
    target_dir = project.external_kits_dir
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise LockfileError(
            f"failed to create external-kits directory at {target_dir}: {exc}"
        ) from exc

    logger.info("Extracting kit dependencies: %s", ", ".join(str(kit) for kit in self.kit))
    for image in self.kit:
        local_override = kit_overrides.get(image.name)
        if local_override is not None:
            logger.warning(
                "Using locally built kit '%s' from '%s' instead of '%s'",
                image.name,
                local_override,
                image.source,
            )
        resolver = ImageResolver(project.as_project_image(image.as_image()))
        await resolver.extract(image_tool, target_dir, arch, local_override=local_override)

    self.synchronize_metadata(project)


def _synchronize_metadata(self: Any, project: Project) -> None:
    """Write the external kit metadata file unless it is already current.

    Leaving an identical file untouched keeps its modification time, so
    package builds keyed on it are not invalidated.

    Raises:
        LockfileError: If the file cannot be read or written.
    """
    kit_list = self.external_kit_metadata()
    metadata_file = project.external_kits_metadata
    try:
        if metadata_file.exists() and metadata_file.read_bytes() == kit_list:
            logger.debug("External kit metadata '%s' is up to date", metadata_file)
            return
        metadata_file.parent.mkdir(parents=True, exist_ok=True)
        metadata_file.write_bytes(kit_list)
    except OSError as exc:
        raise LockfileError(
            f"failed to write external kit metadata: {metadata_file}: {exc}"
        ) from exc
