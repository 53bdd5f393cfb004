"""Streaming digest accumulator.

The digest depends only on the concatenation of every chunk passed to
update(), in call order. Chunk boundaries never matter.
"""

import hashlib

from codehash.errors import ConfigurationError, InvalidStateError

DEFAULT_ALGORITHM = "sha256"
HEX_DIGITS = frozenset("0123456789abcdef")

# Well-known SHA-256 of zero-length input
EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class IncrementalDigestEngine:
    """Fold an ordered sequence of byte chunks into one hex digest.

    The engine is single-use: once finalize() has been called, any further
    update() or finalize() raises InvalidStateError.
    """

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM) -> None:
        self._hash = hashlib.new(algorithm)
        self._algorithm = algorithm
        self._bytes_consumed = 0
        self._finalized = False

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def bytes_consumed(self) -> int:
        """Total number of bytes folded so far."""
        return self._bytes_consumed

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def digest_size(self) -> int:
        """Digest size in bytes (32 for SHA-256)."""
        return self._hash.digest_size

    def update(self, chunk: bytes) -> None:
        if self._finalized:
            raise InvalidStateError("digest engine already finalized; create a new one")
        self._hash.update(chunk)
        self._bytes_consumed += len(chunk)

    def finalize(self) -> str:
        """Return the lowercase hex digest and mark the engine spent."""
        if self._finalized:
            raise InvalidStateError("digest engine already finalized; create a new one")
        self._finalized = True
        return self._hash.hexdigest()


def normalize_hex_digest(value: str, *, size: int = 32, label: str = "digest") -> str:
    """Return value as lowercase hex without a ``0x`` prefix.

    Raises:
        ConfigurationError: If value is not exactly size bytes of hex
    """
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]

    expected_length = size * 2
    if len(text) != expected_length or any(ch not in HEX_DIGITS for ch in text):
        raise ConfigurationError(
            f"{label} must be {expected_length} hex characters, got {value!r}"
        )
    return text


def digest_bytes(data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Hex digest of a single in-memory buffer."""
    engine = IncrementalDigestEngine(algorithm)
    engine.update(data)
    return engine.finalize()
