"""Abstract HTTP interface used by remote-file sources."""

from abc import ABC, abstractmethod
from collections.abc import Iterator

CHUNK_SIZE = 64 * 1024


class HttpClient(ABC):
    """Abstract interface for downloading a resource as a byte stream.

    Implementations include:
    - RealHttpClient: httpx-backed for production
    - FakeHttpClient: in-memory bodies for testing
    """

    @abstractmethod
    def stream(self, uri: str) -> Iterator[bytes]:
        """Yield the response body of a GET request in order.

        Args:
            uri: Absolute http(s) URI

        Returns:
            Iterator over body chunks; chunk sizes are unspecified

        Raises:
            RuntimeError: On connection failure, timeout or a non-success
                status, with the URI and cause in the message
        """
        ...
