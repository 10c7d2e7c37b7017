"""Twoliter.lock --- digest-pinned kit and SDK dependencies.

``Twoliter.lock`` is generated by ``kitlock update``. It acts like
Cargo.lock: a flattened record of every kit and SDK image a project
depends on, each pinned to a content digest, so that the contents of a kit
cannot change underneath a build unnoticed.

The package is split into focused submodules:

- ``models``: ``LockedImage`` and ``ImageMetadata``.
- ``views``: view models of OCI manifests and indexes.
- ``metadata``: kit metadata extraction from image labels.
- ``image``: ``ImageResolver`` for a single image dependency.
- ``archive``: ``OCIArchive``, the content-addressed image cache.
- ``lockfile``: the ``Lock`` class with equality and serialization.
- ``resolver``: breadth-first resolution of the kit graph.
- ``operations``: ``create``, ``load``, ``fetch`` and metadata sync.
- ``sdk``: ``LockedSDK`` for SDK-only verification.
- ``verification``: verification marker files.

All public names are re-exported here.
"""

from kitlock.core.lock.archive import LocalSource, OCIArchive, RegistrySource
from kitlock.core.lock.image import ImageResolver, compute_digest
from kitlock.core.lock.lockfile import Lock
from kitlock.core.lock.metadata import EncodedKitMetadata, extract_encoded_kit_metadata
from kitlock.core.lock.models import ImageMetadata, LockedImage
from kitlock.core.lock.verification import (
    KITS_VERIFIED_MARKER_FILE,
    SDK_VERIFIED_MARKER_FILE,
    LockfileVerifier,
    VerificationManifest,
    VerificationTagger,
    VerifyTag,
    marker_transaction,
)

# Attach resolution and persistence to Lock as methods/classmethods
from kitlock.core.lock import operations as _ops
from kitlock.core.lock import resolver as _resolver

Lock.resolve = classmethod(_resolver._resolve)
Lock.create = classmethod(_ops._create)
Lock.current_lock_state = classmethod(_ops._current_lock_state)
Lock.load = classmethod(_ops._load)
Lock.fetch = _ops._fetch
Lock.synchronize_metadata = _ops._synchronize_metadata

from kitlock.core.lock.sdk import LockedSDK  # noqa: E402

__all__ = [
    "EncodedKitMetadata",
    "ImageMetadata",
    "ImageResolver",
    "KITS_VERIFIED_MARKER_FILE",
    "LocalSource",
    "Lock",
    "LockedImage",
    "LockedSDK",
    "LockfileVerifier",
    "OCIArchive",
    "RegistrySource",
    "SDK_VERIFIED_MARKER_FILE",
    "VerificationManifest",
    "VerificationTagger",
    "VerifyTag",
    "compute_digest",
    "extract_encoded_kit_metadata",
    "marker_transaction",
]
