"""Breadth-first resolution of a project's kit graph into a ``Lock``.

Starting from the project's direct kit dependencies, each layer of the
worklist is drained in turn. Every kit is pinned by digest and its embedded
metadata contributes the next layer (its own kit dependencies) and one SDK
requirement. A ``(name, vendor)`` pair seen twice must carry the same
version; the whole graph must agree on exactly one SDK.

The traversal is an explicit loop over an owned list, so graph depth never
grows the call stack, and images are resolved one at a time so the first
inconsistency found is the one reported.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from kitlock.core.imagetool import ImageTool, image_tool_from_environment
from kitlock.core.lock.image import ImageResolver
from kitlock.core.lock.models import LockedImage
from kitlock.core.project.models import Image
from kitlock.exceptions import KitVersionConflictError, MetadataError, SdkResolutionError

if TYPE_CHECKING:
    from kitlock.core.project.project import Project

logger = logging.getLogger(__name__)


async def _resolve(cls: type, project: Project, image_tool: ImageTool | None = None) -> Any:
    """Resolve the project's full dependency graph.

    Args:
        project: The loaded project.
        image_tool: Tool used to query registries. Selected from the
            environment when omitted.

    Returns:
        A new ``Lock`` with kits sorted by ``(name, vendor, version)``.

    Raises:
        KitVersionConflictError: If two dependents require different
            versions of one kit from one vendor.
        SdkResolutionError: If the graph requires no SDK, or more than one.
        ProjectError: If a dependency names an undeclared vendor.
        MetadataError: If a kit image has no usable metadata.
        RetrievalError: If a registry query fails.
    """
    if image_tool is None:
        image_tool = image_tool_from_environment()

    known: dict[tuple[str, str], str] = {}
    locked: list[LockedImage] = []
    sdk_set: set[Image] = set()
    if project.sdk is not None:
        # SDK images carry no kit metadata, so they never enter the worklist.
        sdk_set.add(project.sdk)
    remaining: list[Image] = list(project.direct_kit_deps())

    while remaining:
        working_set, remaining = remaining, []
        for image in working_set:
            logger.debug("Resolving kit '%s'", image)
            key = (image.name, image.vendor)
            known_version = known.get(key)
            if known_version is not None:
                if known_version != image.version:
                    raise KitVersionConflictError(
                        "cannot have multiple versions of the same kit "
                        f"({image.name}-{image.version}@{image.vendor} != "
                        f"{image.name}-{known_version}@{image.vendor})"
                    )
                logger.debug("Skipping kit '%s' as it has already been resolved", image.name)
                continue

            known[key] = image.version
            resolver = ImageResolver(project.as_project_image(image))
            locked_image, metadata = await resolver.resolve(image_tool)
            if metadata is None:
                raise MetadataError(
                    f"failed to validate kit image with name {locked_image.name} "
                    f"from vendor {locked_image.vendor}"
                )
            locked.append(locked_image)
            sdk_set.add(metadata.sdk)
            remaining.extend(metadata.kits)

    logger.debug("Resolving workspace SDK from %s", sorted(str(sdk) for sdk in sdk_set))
    if len(sdk_set) > 1:
        found = ", ".join(sorted(str(sdk) for sdk in sdk_set))
        raise SdkResolutionError(f"cannot use multiple sdks (found sdk: {found})")
    if not sdk_set:
        raise SdkResolutionError(
            "no sdk was found for use, please specify a sdk in Twoliter.toml"
        )
    (sdk,) = sdk_set
    sdk_resolver = ImageResolver(project.as_project_image(sdk)).skip_metadata()
    locked_sdk, _ = await sdk_resolver.resolve(image_tool)

    return cls(schema_version=project.schema_version, sdk=locked_sdk, kit=locked)
