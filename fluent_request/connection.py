"""Connection - Reusable base for issuing requests.

A Connection holds a base URL, optional default headers and one shared
httpx.Client. It never changes after construction: with_headers() returns a
new Connection that shares the same client. Requests are derived from it with
request(), each getting its own copy of the URL and headers.

Usage:
    with Connection("http://localhost:3000") as conn:
        body = conn.request(Method.GET).with_path("/items").send()
"""

from __future__ import annotations

import copy
from typing import Any

import httpx

from fluent_request.errors import Error
from fluent_request.models import ConnectionConfig, Method, method_name
from fluent_request.request import Request

MALFORMED_URL_MESSAGE = "Could not parse URL"


def parse_base_url(url: str | httpx.URL) -> httpx.URL:
    """Parse an absolute http(s) URL. Raises Error if it is malformed or relative."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise Error(MALFORMED_URL_MESSAGE) from e

    # httpx happily parses relative references; a base URL needs a scheme and host.
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise Error(MALFORMED_URL_MESSAGE)
    return parsed


class Connection:
    """Base URL, default headers and a shared HTTP client.

    Args:
        url: Absolute http(s) URL, as a string or httpx.URL.
        client: Existing httpx.Client to share. A new client is created if None.

    Raises:
        Error: If url cannot be parsed.
    """

    def __init__(self, url: str | httpx.URL, *, client: httpx.Client | None = None) -> None:
        self._url = parse_base_url(url)
        self._headers: httpx.Headers | None = None
        self._client = client if client is not None else httpx.Client()

    @classmethod
    def new(cls, url: str | httpx.URL) -> Connection:
        """Connection with no default headers and a freshly created client."""
        return cls(url)

    @classmethod
    def from_config(
        cls,
        config: ConnectionConfig,
        *,
        client: httpx.Client | None = None,
    ) -> Connection:
        """Build a Connection from a connection profile."""
        connection = cls(config.base_url, client=client)
        if config.headers:
            connection = connection.with_headers(config.headers)
        return connection

    @property
    def url(self) -> httpx.URL:
        return self._url

    @property
    def headers(self) -> httpx.Headers | None:
        """Default headers, or None if none were set."""
        return self._headers

    @property
    def client(self) -> httpx.Client:
        return self._client

    def with_headers(self, headers: Any) -> Connection:
        """Return a copy whose default headers are replaced (not merged) by headers.

        Accepts anything httpx.Headers accepts: a mapping, a list of pairs,
        or another httpx.Headers.
        """
        clone = copy.copy(self)
        clone._headers = httpx.Headers(headers)
        return clone

    def request(self, method: Method | str) -> Request:
        """Start a request builder sharing this connection's client."""
        return Request(
            self._client,
            self._url,
            method_name(method),
            headers=httpx.Headers(self._headers) if self._headers is not None else None,
        )

    def close(self) -> None:
        """Close the shared client. Affects every copy and derived request."""
        self._client.close()

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Connection(url={str(self._url)!r})"
