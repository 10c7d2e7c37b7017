"""Lock core class --- the resolved contents of ``Twoliter.lock``.

The ``Lock`` is a flattened, digest-pinned record of every kit a project
depends on (transitively) and of the single SDK they share. It provides:

- **Equality:** order-insensitive over kits, identity over ``(source, digest)``.
- **Serialization:** deterministic ``to_dict`` and ``to_toml``, and a
  validating ``from_dict``.
- **Verification:** the ``verified`` tag set consumed by
  ``VerificationTagger``.
- **External kit metadata:** the canonical JSON document written next to
  fetched kits for the build system.

Determinism guarantee: kits are sorted by ``(name, vendor, version)`` when a
``Lock`` is constructed, so two locks with the same content serialize to
byte-identical TOML.

Resolution, persistence and fetching are in ``resolver.py`` and
``operations.py`` and are attached to this class in ``__init__.py``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import tomli_w

from kitlock.canonical import canonical_json_bytes
from kitlock.compatibility import SUPPORTED_PROJECT_SCHEMA_VERSION
from kitlock.core.lock.models import LockedImage
from kitlock.core.lock.verification import VerificationManifest, VerifyTag
from kitlock.exceptions import LockfileError


@dataclass(eq=False)
class Lock:
    """Resolved, digest-pinned project dependencies.

    Attributes:
        schema_version: Project schema version the lock was generated from.
        sdk: The one SDK used by the project and all of its kits.
        kit: Every kit reachable from the project's direct dependencies.
    """

    schema_version: int
    sdk: LockedImage
    kit: list[LockedImage] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.kit = sorted(self.kit, key=LockedImage.sort_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Lock):
            return NotImplemented
        return (
            self.schema_version == other.schema_version
            and self.sdk == other.sdk
            and self.kit_identities() == other.kit_identities()
        )

    __hash__ = None  # type: ignore[assignment]

    def kit_identities(self) -> frozenset[tuple[str, str]]:
        """Return the ``(source, digest)`` identity of every kit."""
        return frozenset(image.identity for image in self.kit)

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the ``Twoliter.lock`` table layout."""
        return {
            "schema-version": self.schema_version,
            "sdk": self.sdk.to_dict(),
            "kit": [image.to_dict() for image in self.kit],
        }

    def to_toml(self) -> str:
        """Serialize to TOML text, kits as an array of ``[[kit]]`` tables."""
        return tomli_w.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> Lock:
        """Deserialize a lock from a parsed ``Twoliter.lock``.

        Raises:
            LockfileError: If the schema version is unsupported or a
                required key is missing or invalid.
        """
        if not isinstance(data, dict):
            raise LockfileError("lockfile must be a table")
        schema_version = data.get("schema-version")
        if schema_version != SUPPORTED_PROJECT_SCHEMA_VERSION:
            raise LockfileError(
                f"unsupported lockfile schema-version {schema_version!r}, "
                f"expected {SUPPORTED_PROJECT_SCHEMA_VERSION}"
            )
        if "sdk" not in data:
            raise LockfileError("lockfile is missing the 'sdk' table")
        kits = data.get("kit", [])
        if not isinstance(kits, list):
            raise LockfileError("lockfile 'kit' must be an array of tables")
        return cls(
            schema_version=schema_version,
            sdk=LockedImage.from_dict(data["sdk"], "lockfile sdk"),
            kit=[LockedImage.from_dict(kit, f"lockfile kit #{i}") for i, kit in enumerate(kits)],
        )

    # -- Verification and build metadata -------------------------------------

    def verified(self) -> dict[VerifyTag, VerificationManifest]:
        """Artifacts this lock vouches for, per verification tag."""
        return {
            VerifyTag.SDK: VerificationManifest.of([self.sdk]),
            VerifyTag.KITS: VerificationManifest.of(self.kit),
        }

    def external_kit_metadata(self) -> bytes:
        """Canonical JSON ``{"kit": [...], "sdk": {...}}`` for fetched kits."""
        return canonical_json_bytes(
            {
                "sdk": self.sdk.to_dict(),
                "kit": [image.to_dict() for image in self.kit],
            }
        )
