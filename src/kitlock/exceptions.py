"""kitlock exception hierarchy.

All public exceptions inherit from KitLockError, giving callers a single
base class to catch when they want to handle any kitlock-specific failure
without swallowing unrelated errors.
"""


class KitLockError(Exception):
    """Base exception for all kitlock errors."""


class ProjectError(KitLockError):
    """Raised when the project declaration is invalid.

    Covers malformed ``Twoliter.toml`` and ``Twoliter.override`` files,
    invalid identifiers or versions, dependencies on undeclared vendors,
    and schema-version mismatches.
    """


class InvalidArchitectureError(ProjectError):
    """Raised when an architecture name cannot be mapped to an image platform."""


class ResolutionError(KitLockError):
    """Raised when the dependency graph cannot be resolved.

    Covers conflicting kit versions and an SDK requirement that is missing
    or ambiguous.
    """


class KitVersionConflictError(ResolutionError):
    """Raised when two requesters need different versions of the same kit."""


class SdkResolutionError(ResolutionError):
    """Raised when zero or more than one SDK is reachable from the project."""


class RetrievalError(KitLockError):
    """Raised when an image manifest or configuration cannot be retrieved.

    Covers malformed manifest or configuration JSON and missing platform
    entries. The message always names the URI being fetched.
    """


class ImageToolError(RetrievalError):
    """Raised when the external image tool is missing or a command fails."""


class MetadataError(KitLockError):
    """Raised when kit metadata embedded in an image is absent or unusable.

    Covers missing labels, metadata schema-version skew, undecodable
    payloads, and images whose architectures disagree about their metadata.
    """


class ArchiveError(KitLockError):
    """Raised when a cached OCI archive cannot be pulled or unpacked."""


class LockfileError(KitLockError):
    """Raised for lockfile read, parse, or write failures."""


class LockDriftError(LockfileError):
    """Raised when the lockfile no longer matches the project or the registry."""


class VerificationError(KitLockError):
    """Raised when verification marker files cannot be written or removed."""
