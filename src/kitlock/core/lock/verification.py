"""Marker files recording which artifacts were verified against the lock.

Later build stages refuse to run unless the artifacts they use were checked
against ``Twoliter.lock`` in this session. The check leaves evidence as
marker files in the external-kits directory:

- ``.sdk-verified``: the SDK was re-resolved and matched the lock.
- ``.kits-verified``: every kit was re-resolved and matched the lock.

Each marker holds the canonical JSON array of the verified artifacts'
identity strings, e.g. ``["core-kit-1.0.0@acme (r.example/core-kit:v1.0.0)"]``.

A marker must never outlive the verification that produced it, so every
write first removes all known markers, and a failed write removes the
markers written so far.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

from kitlock.canonical import canonical_json_bytes
from kitlock.exceptions import VerificationError

logger = logging.getLogger(__name__)

SDK_VERIFIED_MARKER_FILE = ".sdk-verified"
KITS_VERIFIED_MARKER_FILE = ".kits-verified"


class VerifyTag(Enum):
    """Kinds of artifacts that can be verified against the lock."""

    SDK = SDK_VERIFIED_MARKER_FILE
    KITS = KITS_VERIFIED_MARKER_FILE

    @property
    def marker_file_name(self) -> str:
        return self.value


@dataclass(frozen=True)
class VerificationManifest:
    """Sorted set of identity strings of verified artifacts."""

    verified_images: frozenset[str] = frozenset()

    @classmethod
    def of(cls, images: Iterable[object]) -> VerificationManifest:
        """Build a manifest from artifacts, identified by ``str(image)``."""
        return cls(frozenset(str(image) for image in images))

    def as_canonical_json(self) -> bytes:
        return canonical_json_bytes(sorted(self.verified_images))


class LockfileVerifier(Protocol):
    """Anything that can claim artifacts were verified against the lock."""

    def verified(self) -> dict[VerifyTag, VerificationManifest]: ...


def _remove_marker(marker: Path) -> None:
    try:
        marker.unlink(missing_ok=True)
    except OSError as exc:
        raise VerificationError(
            f"failed to remove existing verification tag file: {marker}: {exc}"
        ) from exc


@contextlib.contextmanager
def marker_transaction(external_kits_dir: Path) -> Iterator[list[Path]]:
    """Scope in which verification markers are (re)written.

    On entry every known marker is removed and the directory is created.
    The body appends each marker to the yielded list before writing it. If the body
    raises, those markers are removed again before the error propagates, so
    a failed write never leaves a partial set of tags behind.
    """
    VerificationTagger.cleanup_existing_tags(external_kits_dir)
    try:
        external_kits_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise VerificationError(
            f"failed to create external-kits directory at '{external_kits_dir}': {exc}"
        ) from exc

    written: list[Path] = []
    try:
        yield written
    except BaseException:
        for marker in written:
            marker.unlink(missing_ok=True)
        raise


class VerificationTagger:
    """Writes marker files for the tags a ``LockfileVerifier`` reports.

    Example::

        lock = await Lock.load(project)
        VerificationTagger.from_verifier(lock).write_tags(project.external_kits_dir)
    """

    def __init__(self, tags: dict[VerifyTag, VerificationManifest]) -> None:
        self.tags = dict(tags)

    @classmethod
    def from_verifier(cls, verifier: LockfileVerifier) -> VerificationTagger:
        return cls(verifier.verified())

    def write_tags(self, external_kits_dir: Path) -> None:
        """Replace all markers in ``external_kits_dir`` with this tagger's tags.

        Raises:
            VerificationError: If a marker cannot be removed or written.
        """
        with marker_transaction(external_kits_dir) as written:
            logger.debug("Writing tag files for verified artifacts")
            for tag in sorted(self.tags, key=lambda t: t.marker_file_name):
                marker = external_kits_dir / tag.marker_file_name
                logger.debug("Writing tag file for verified artifacts: '%s'", marker)
                written.append(marker)
                try:
                    marker.write_bytes(self.tags[tag].as_canonical_json())
                except OSError as exc:
                    raise VerificationError(
                        f"failed to write verification tag file: '{marker}': {exc}"
                    ) from exc

    @staticmethod
    def cleanup_existing_tags(external_kits_dir: Path) -> None:
        """Delete every known marker file in ``external_kits_dir``."""
        logger.debug("Cleaning up any existing tag files for resolved artifacts")
        for tag in VerifyTag:
            marker = external_kits_dir / tag.marker_file_name
            if marker.exists():
                logger.debug("Removing existing verification tag file '%s'", marker)
                _remove_marker(marker)
