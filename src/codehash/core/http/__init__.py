"""HTTP fetching subpackage."""

from codehash.core.http.abc import HttpClient
from codehash.core.http.fake import FakeHttpClient
from codehash.core.http.real import RealHttpClient

__all__ = [
    "FakeHttpClient",
    "HttpClient",
    "RealHttpClient",
]
