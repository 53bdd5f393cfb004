"""Error taxonomy for codehash runs.

Hard failures (configuration, network, filesystem) abort a run and never
produce a digest. A digest that does not match its commitment is a normal
result, reported through VerificationResult; VerificationMismatch exists only
for callers that opt into raising.
"""

from pathlib import Path


class CodehashError(Exception):
    """Base class for all codehash errors."""


class ConfigurationError(CodehashError):
    """Missing or invalid arguments, environment or config file values."""


class InvalidStateError(CodehashError):
    """An object was used after it reached a terminal state."""


class SourceError(CodehashError):
    """Failure while resolving a single artifact source.

    Carries the position of the source in the run and its original reference
    string so every message names the offending source.
    """

    def __init__(self, index: int, reference: str, detail: str) -> None:
        self.index = index
        self.reference = reference
        self.detail = detail
        super().__init__(f"source #{index} ({reference}): {detail}")


class NetworkError(SourceError):
    """Fetch or clone failure for a specific source."""


class FilesystemError(SourceError):
    """Scratch write, read or cleanup failure for a specific source."""


class ScratchDirectoryError(CodehashError):
    """The run's private scratch directory could not be created or removed."""

    def __init__(self, path: Path, action: str, detail: str) -> None:
        self.path = path
        self.action = action
        self.detail = detail
        super().__init__(f"cannot {action} scratch directory {path}: {detail}")


class VerificationMismatch(CodehashError):
    """Computed digest differs from the expected commitment."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"digest mismatch: expected {expected}, computed {actual}")


class VersionIdReuseError(CodehashError):
    """A version label was reused for different code."""

    def __init__(self, version_id: str, existing_hash: str, new_hash: str) -> None:
        self.version_id = version_id
        self.existing_hash = existing_hash
        self.new_hash = new_hash
        super().__init__(
            f"version '{version_id}' is already published with code hash {existing_hash}; "
            f"refusing to reuse it for {new_hash}"
        )
