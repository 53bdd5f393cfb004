"""httpx-backed HttpClient."""

import logging
from collections.abc import Iterator

import httpx

from codehash.core.http.abc import CHUNK_SIZE, HttpClient

logger = logging.getLogger(__name__)


class RealHttpClient(HttpClient):
    """Production implementation streaming bodies with httpx.

    Redirects are followed; any status outside 2xx after redirects is a
    failure.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Create RealHttpClient.

        Args:
            timeout: Connect/read/write/pool timeout in seconds
            transport: Optional httpx transport, e.g. httpx.MockTransport
        """
        self._timeout = timeout
        self._transport = transport

    def stream(self, uri: str) -> Iterator[bytes]:
        logger.debug("GET %s (timeout=%ss)", uri, self._timeout)
        try:
            with httpx.Client(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                with client.stream("GET", uri) as response:
                    response.raise_for_status()
                    yield from response.iter_bytes(chunk_size=CHUNK_SIZE)
        except httpx.HTTPStatusError as e:
            status = f"{e.response.status_code} {e.response.reason_phrase}"
            raise RuntimeError(f"Failed to fetch {uri}\nStatus: {status}") from e
        except httpx.TimeoutException as e:
            raise RuntimeError(f"Timed out after {self._timeout}s fetching {uri}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RuntimeError(f"Failed to fetch {uri}\n{type(e).__name__}: {e}") from e
