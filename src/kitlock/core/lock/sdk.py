"""The project SDK checked against the lock on its own.

Some build steps only need the SDK. ``LockedSDK.load`` re-resolves just the
project's direct SDK dependency and compares it with the SDK recorded in
``Twoliter.lock``, without walking the kit graph.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from kitlock.core.imagetool import ImageTool, image_tool_from_environment
from kitlock.core.lock.image import ImageResolver
from kitlock.core.lock.lockfile import Lock
from kitlock.core.lock.models import LockedImage
from kitlock.core.lock.verification import VerificationManifest, VerifyTag
from kitlock.exceptions import LockDriftError, SdkResolutionError

if TYPE_CHECKING:
    from kitlock.core.project.project import Project

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockedSDK:
    """A resolved SDK image that matched the lock."""

    image: LockedImage

    def verified(self) -> dict[VerifyTag, VerificationManifest]:
        return {VerifyTag.SDK: VerificationManifest.of([self.image])}

    @classmethod
    async def resolve_sdk(
        cls, project: Project, image_tool: ImageTool | None = None
    ) -> LockedSDK | None:
        """Resolve the project's direct SDK, or return None if it has none."""
        sdk = project.direct_sdk_image_dep()
        if sdk is None:
            logger.debug("No explicit SDK image provided")
            return None
        if image_tool is None:
            image_tool = image_tool_from_environment()
        logger.debug("Resolving workspace SDK '%s'", sdk)
        locked_sdk, _ = await ImageResolver(sdk).skip_metadata().resolve(image_tool)
        return cls(locked_sdk)

    @classmethod
    async def load(cls, project: Project, image_tool: ImageTool | None = None) -> LockedSDK:
        """Re-resolve the project SDK and require it to match the lock.

        Raises:
            LockfileError: If ``Twoliter.lock`` is missing or malformed.
            SdkResolutionError: If the project declares no SDK.
            LockDriftError: If the resolved SDK differs from the locked one.
        """
        logger.info("Resolving SDK project reference to check against lock file")
        current_lock = Lock.current_lock_state(project)
        resolved = await cls.resolve_sdk(project, image_tool)
        if resolved is None:
            raise SdkResolutionError("Project does not have explicit SDK image.")

        if current_lock.sdk != resolved.image:
            logger.error(
                "Locked SDK %s does not match resolved SDK %s", current_lock.sdk, resolved.image
            )
            raise LockDriftError(
                "changes have occured to Twoliter.toml or the remote SDK image that "
                "require an update to Twoliter.lock"
            )
        return resolved
