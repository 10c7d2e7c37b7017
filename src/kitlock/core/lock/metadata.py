"""Kit metadata embedded in OCI image configuration labels.

Each kit image carries its own dependency declaration (required SDK and
kit dependencies) as base64-encoded JSON in a configuration label named
``dev.bottlerocket.kit.<metadata-version>``. This module finds that label,
explains version skew when only a differently-versioned label exists, and
decodes the payload into ``ImageMetadata``.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass

from kitlock.compatibility import (
    KIT_METADATA_LABEL_PREFIX,
    SUPPORTED_KIT_METADATA_VERSION,
    supported_kit_metadata_label,
)
from kitlock.core.imagetool import ConfigView, ImageTool
from kitlock.core.lock.models import ImageMetadata
from kitlock.exceptions import MetadataError

logger = logging.getLogger(__name__)


def compare_version_strs(lhs: str, rhs: str) -> str:
    """Describe metadata version ``lhs`` relative to ``rhs`` in English.

    Versions are compared numerically after stripping a leading ``v``.

    Returns:
        ``"an older"``, ``"a newer"``, or ``"a different"`` when either
        version is not numeric.
    """
    try:
        left = int(lhs.removeprefix("v"))
        right = int(rhs.removeprefix("v"))
    except ValueError:
        return "a different"
    return "an older" if left < right else "a newer"


def extract_encoded_kit_metadata(config: ConfigView) -> str:
    """Return the encoded metadata stored under the supported label.

    Raises:
        MetadataError: If the supported label is absent. When another label
            with the kit metadata prefix exists, the message names its
            version and whether it looks older or newer than the supported
            one; otherwise it says the image does not appear to be a kit.
    """
    encoded = config.labels.get(supported_kit_metadata_label())
    if encoded is not None:
        return encoded

    for label in sorted(config.labels):
        if label.startswith(KIT_METADATA_LABEL_PREFIX):
            kit_version = label.removeprefix(KIT_METADATA_LABEL_PREFIX)
            relation = compare_version_strs(kit_version, SUPPORTED_KIT_METADATA_VERSION)
            raise MetadataError(
                f"kit appears to be built with metadata version '{kit_version}', possibly by "
                f"{relation} version of kitlock with unsupported incompatibilities. "
                f"This version of kitlock supports metadata version "
                f"'{SUPPORTED_KIT_METADATA_VERSION}'."
            )
    raise MetadataError("no metadata stored on image, this image appears not to be a kit")


@dataclass(frozen=True)
class EncodedKitMetadata:
    """Kit metadata exactly as stored in the image label.

    Equality compares the encoded text, which is how images for different
    architectures of one kit are checked for agreement.
    """

    encoded: str

    @classmethod
    async def from_image(cls, image_uri: str, image_tool: ImageTool) -> EncodedKitMetadata:
        """Fetch the configuration of ``image_uri`` and extract its metadata."""
        logger.debug("Extracting kit metadata from OCI image config of '%s'", image_uri)
        config = await image_tool.get_config(image_uri)
        metadata = cls(extract_encoded_kit_metadata(config))
        logger.debug("Kit metadata retrieved from '%s': %s", image_uri, metadata.describe())
        return metadata

    def decode(self) -> ImageMetadata:
        """Decode the base64 JSON payload.

        Raises:
            MetadataError: If the payload is not base64, not JSON, or does
                not match the metadata schema.
        """
        try:
            raw = base64.b64decode(self.encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MetadataError(f"failed to decode kit metadata as base64: {exc}") from exc
        try:
            data = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            raise MetadataError(f"failed to parse kit metadata json: {exc}") from exc
        return ImageMetadata.from_dict(data)

    def describe(self) -> str:
        """Readable form for logs; never raises.

        Shows the decoded metadata when possible, the escaped encoded text
        otherwise.
        """
        try:
            return f"<ImageMetadata(decoded) [{self.decode()!r}]>"
        except MetadataError:
            escaped = self.encoded.replace("\n", "\\n")
            return f"<ImageMetadata(encoded) [{escaped}]>"
