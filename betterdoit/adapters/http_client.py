"""
Adapter for the HTTP client library (httpx) used by the command-line client.
"""
from typing import Any, Dict, Optional

import httpx

HTTPStatusError = httpx.HTTPStatusError
RequestError = httpx.RequestError


class HTTPResponse:
    """Abstracted HTTP response interface."""

    def __init__(self, response: httpx.Response):
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    def raise_for_status(self) -> None:
        """Raise HTTPStatusError if status code indicates error."""
        self._response.raise_for_status()

    def json(self) -> Any:
        return self._response.json()

    @property
    def content(self) -> bytes:
        return self._response.content

    @property
    def text(self) -> str:
        return self._response.text

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._response.headers)


class HttpxClientAdapter:
    """Synchronous httpx client returning HTTPResponse objects."""

    def __init__(self, timeout: Optional[float] = None, **kwargs):
        self._client = httpx.Client(timeout=timeout, **kwargs)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._client.close()

    def request(self, method: str, url: str, **kwargs) -> HTTPResponse:
        return HTTPResponse(self._client.request(method, url, **kwargs))

    def get(self, url: str, **kwargs) -> HTTPResponse:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> HTTPResponse:
        return self.request("POST", url, **kwargs)

    def patch(self, url: str, **kwargs) -> HTTPResponse:
        return self.request("PATCH", url, **kwargs)

    def delete(self, url: str, **kwargs) -> HTTPResponse:
        return self.request("DELETE", url, **kwargs)

    def close(self):
        self._client.close()


class HTTPClientAdapterFactory:
    """Factory for creating HTTP client adapters."""

    @staticmethod
    def create_client(timeout: Optional[float] = None, **kwargs) -> HttpxClientAdapter:
        return HttpxClientAdapter(timeout=timeout, **kwargs)
