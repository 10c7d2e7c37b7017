"""Version numbers used to detect compatibility with kitlock's own artifacts."""

from __future__ import annotations

# Exact ``schema-version`` accepted in Twoliter.toml and Twoliter.lock.
SUPPORTED_PROJECT_SCHEMA_VERSION: int = 1

# Kit metadata version embedded in a label of each kit image's configuration.
SUPPORTED_KIT_METADATA_VERSION: str = "v2"

# The label carrying kit metadata is this prefix plus the metadata version.
KIT_METADATA_LABEL_PREFIX: str = "dev.bottlerocket.kit."


def supported_kit_metadata_label() -> str:
    """Return the image configuration label holding supported kit metadata."""
    return f"{KIT_METADATA_LABEL_PREFIX}{SUPPORTED_KIT_METADATA_VERSION}"
