"""Fake HttpClient for testing."""

from collections.abc import Iterator

from codehash.core.http.abc import HttpClient


class FakeHttpClient(HttpClient):
    """In-memory fake serving predefined bodies.

    This class has NO public setup methods. All state is provided via
    constructor or captured during execution.
    """

    def __init__(
        self,
        *,
        bodies: dict[str, bytes] | None = None,
        chunk_size: int | None = None,
        failing_uris: set[str] | None = None,
    ) -> None:
        """Create FakeHttpClient.

        Args:
            bodies: Mapping of URI to response body
            chunk_size: Split bodies into chunks of this size; None yields
                each body as a single chunk
            failing_uris: URIs that fail after yielding the first chunk,
                simulating a dropped connection
        """
        self._bodies = bodies or {}
        self._chunk_size = chunk_size
        self._failing_uris = failing_uris or set()
        self._fetch_calls: list[str] = []

    @property
    def fetch_calls(self) -> list[str]:
        """URIs requested via stream(), in call order."""
        return list(self._fetch_calls)

    def stream(self, uri: str) -> Iterator[bytes]:
        self._fetch_calls.append(uri)

        if uri not in self._bodies:
            raise RuntimeError(f"Failed to fetch {uri}\nStatus: 404 Not Found")

        body = self._bodies[uri]
        if self._chunk_size is None:
            chunks = [body]
        else:
            chunks = [body[i : i + self._chunk_size] for i in range(0, len(body), self._chunk_size)]

        for position, chunk in enumerate(chunks):
            if position == 1 and uri in self._failing_uris:
                break
            yield chunk

        if uri in self._failing_uris:
            raise RuntimeError(f"Failed to fetch {uri}\nReadError: connection reset by peer")
