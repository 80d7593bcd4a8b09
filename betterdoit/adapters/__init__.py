"""
Adapters for third-party libraries.
"""
from betterdoit.adapters.http_client import (
    HTTPClientAdapterFactory,
    HTTPResponse,
    HTTPStatusError,
    RequestError,
)

__all__ = [
    "HTTPClientAdapterFactory",
    "HTTPResponse",
    "HTTPStatusError",
    "RequestError",
]
